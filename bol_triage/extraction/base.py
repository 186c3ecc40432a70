from abc import ABC, abstractmethod

from bol_triage.extraction.models import ExtractionOutcome


class BaseExtractor(ABC):
    """Contract for extraction backends consumed by the gateway."""

    name: str = "base"

    @abstractmethod
    async def extract(self, content: bytes, filename: str, mime_type: str) -> ExtractionOutcome:
        """Classify and extract a bill of lading from raw document bytes.

        Raises:
            ExtractionError: on any backend failure.
        """
