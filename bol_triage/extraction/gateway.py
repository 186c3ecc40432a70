from bol_triage.documents.models import ErrorCode, ProcessingError
from bol_triage.extraction.base import BaseExtractor
from bol_triage.extraction.live_extractor import LiveExtractor
from bol_triage.extraction.mock_extractor import MockExtractor
from bol_triage.extraction.models import ExtractionOutcome
from bol_triage.logging.logger import Log


class ExtractorGateway:
    """Single extraction contract in front of a live backend and its fallback.

    Always returns an outcome. The fallback answers whenever the live backend
    is unconfigured, fails, or has no bytes to work with; a PROCESSING_FAILED
    outcome is synthesized only when the fallback itself fails.
    """

    def __init__(
        self,
        *,
        live: LiveExtractor | None,
        fallback: BaseExtractor | None = None,
        provider: str,
    ) -> None:
        self._live = live
        self._fallback = fallback if fallback is not None else MockExtractor()
        self._provider = provider

    @property
    def is_live(self) -> bool:
        return self._live is not None

    async def extract(self, content: bytes, filename: str, mime_type: str) -> ExtractionOutcome:
        failure = "Extraction backend is not configured"
        if self._live is not None and content:
            try:
                return await self._live.extract(content, filename, mime_type)
            except Exception as exc:
                failure = f"{self._live.name} backend failed: {exc}"
                Log.warning("Live extraction failed, falling back", filename=filename, error=exc)
        elif self._live is not None:
            failure = "Original document bytes are not available"
            Log.info("No document bytes for live extraction, using fallback", filename=filename)

        try:
            return await self._fallback.extract(content, filename, mime_type)
        except Exception as exc:
            Log.error("Fallback extraction failed", filename=filename, error=exc)
            return self._failed(f"{failure}; fallback failed: {exc}")

    def status(self) -> dict[str, object]:
        return {
            "mode": "live" if self._live is not None else "mock",
            "provider": self._provider,
            "configured": self._live is not None,
        }

    async def test_connection(self) -> dict[str, object]:
        """Check that the live backend is reachable."""
        if self._live is None:
            return {"success": False, "message": f"{self._provider} is not configured"}
        try:
            await self._live.ping()
        except Exception as exc:
            return {"success": False, "message": f"{self._provider} connection failed: {exc}"}
        return {"success": True, "message": f"{self._provider} connection successful"}

    @staticmethod
    def _failed(details: str) -> ExtractionOutcome:
        return ExtractionOutcome.failed(
            ProcessingError(
                code=ErrorCode.PROCESSING_FAILED,
                message="Document processing service error",
                details=details,
            ),
            source="gateway",
        )
