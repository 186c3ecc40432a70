from typing import ClassVar

from bol_triage.config.settings import Settings
from bol_triage.extraction.client_base import BaseExtractionClient
from bol_triage.extraction.gateway import ExtractorGateway
from bol_triage.extraction.live_extractor import LiveExtractor
from bol_triage.extraction.mock_extractor import MockExtractor
from bol_triage.extraction.openai_client_adapter import OpenAIClientAdapter
from bol_triage.extraction.xtractflow_client_adapter import XTractFlowClientAdapter
from bol_triage.logging.logger import Log
from bol_triage.pdf.factory import PdfExtractorFactory


class ExtractorFactory:
    """Builds an ExtractorGateway from explicitly passed settings."""

    PROVIDERS: ClassVar[tuple[str, ...]] = ("xtractflow", "openai", "openai_compatible", "mock")

    @classmethod
    def create(cls, settings: Settings) -> ExtractorGateway:
        provider = settings.extractor_provider.lower()
        if provider not in cls.PROVIDERS:
            raise ValueError(
                f"Unknown extractor provider '{provider}'. Choose from: {list(cls.PROVIDERS)}"
            )

        client = cls._create_client(provider, settings)
        live = None
        if client is not None:
            live = LiveExtractor(
                client=client,
                classification_min_confidence=settings.classification_min_confidence,
            )
        elif provider != "mock":
            Log.info(f"{provider} is not configured, using mock extraction")

        fallback = MockExtractor(flawed_ratio=settings.mock_flawed_ratio)
        return ExtractorGateway(live=live, fallback=fallback, provider=provider)

    @classmethod
    def _create_client(cls, provider: str, settings: Settings) -> BaseExtractionClient | None:
        if provider == "xtractflow":
            if not (settings.xtractflow_api_url and settings.xtractflow_api_key):
                return None
            return XTractFlowClientAdapter(
                api_url=settings.xtractflow_api_url,
                api_key=settings.xtractflow_api_key,
                classify_timeout_seconds=settings.xtractflow_classify_timeout_seconds,
                extract_timeout_seconds=settings.xtractflow_extract_timeout_seconds,
            )
        if provider in ("openai", "openai_compatible"):
            if not (settings.openai_api_key and settings.openai_model_name):
                return None
            return OpenAIClientAdapter(
                api_key=settings.openai_api_key,
                model=settings.openai_model_name,
                timeout_seconds=settings.openai_timeout_seconds,
                pdf_extractor=PdfExtractorFactory.create(settings.pdf_engine),
                base_url=cls._resolve_base_url(provider, settings),
            )
        return None

    @staticmethod
    def _resolve_base_url(provider: str, settings: Settings) -> str | None:
        url = settings.openai_base_url.strip()
        if provider == "openai_compatible" and not url:
            raise ValueError(
                "openai_base_url is required for extractor_provider=openai_compatible"
            )
        return url or None
