from abc import ABC, abstractmethod
from typing import Any


class BaseExtractionClient(ABC):
    """Contract for provider-specific document-AI clients.

    Both calls return the provider's raw JSON object; shape validation
    happens in ``extraction.payload``.
    """

    name: str = "base"

    @abstractmethod
    async def classify(
        self,
        *,
        content: bytes,
        filename: str,
        mime_type: str,
        categories: list[str],
    ) -> dict[str, Any]:
        """Return ``{"category": ..., "confidence": ...}``.

        Raises:
            ExtractionError: on any failure.
        """

    @abstractmethod
    async def extract(
        self,
        *,
        content: bytes,
        filename: str,
        mime_type: str,
        instructions: str,
    ) -> dict[str, Any]:
        """Return ``{"fields": {...}, "confidence": ..., "additional_bols": [...]}``.

        Raises:
            ExtractionError: on any failure.
        """

    async def ping(self) -> None:
        """Cheap reachability check.

        Raises:
            ExtractionError: if the backend cannot be reached.
        """
