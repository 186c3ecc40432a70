from bol_triage.documents.models import ErrorCode, ProcessingError
from bol_triage.extraction.base import BaseExtractor
from bol_triage.extraction.client_base import BaseExtractionClient
from bol_triage.extraction.models import BOL_CATEGORY, CATEGORIES, ExtractionOutcome
from bol_triage.extraction.payload import build_classification, build_extracted_fields
from bol_triage.extraction.prompt_loader import load_prompt
from bol_triage.logging.logger import Log


class LiveExtractor(BaseExtractor):
    """Two-step live extraction: classify, then extract fields if it is a BOL."""

    def __init__(
        self,
        *,
        client: BaseExtractionClient,
        classification_min_confidence: float = 0.7,
        instructions: str | None = None,
    ) -> None:
        self._client = client
        self._min_confidence = classification_min_confidence
        self._instructions = instructions or load_prompt("extraction_instructions.txt")
        self.name = client.name

    async def extract(self, content: bytes, filename: str, mime_type: str) -> ExtractionOutcome:
        raw_classification = await self._client.classify(
            content=content,
            filename=filename,
            mime_type=mime_type,
            categories=list(CATEGORIES),
        )
        classification = build_classification(raw_classification)
        Log.info(
            "Document classified",
            filename=filename,
            category=classification.category,
            confidence=classification.confidence,
        )
        if (
            classification.category != BOL_CATEGORY
            or classification.confidence < self._min_confidence
        ):
            return ExtractionOutcome.failed(
                ProcessingError(
                    code=ErrorCode.DOCUMENT_TYPE_MISMATCH,
                    message=(
                        f"Document classified as {classification.category} "
                        f"(confidence: {round(classification.confidence * 100)}%)"
                    ),
                    details="This appears to be a different document type, not a Bill of Lading",
                ),
                source=self.name,
            )

        raw_fields = await self._client.extract(
            content=content,
            filename=filename,
            mime_type=mime_type,
            instructions=self._instructions,
        )
        extracted = build_extracted_fields(raw_fields)
        return ExtractionOutcome(
            record=extracted.record,
            confidence=extracted.confidence,
            classification_confidence=classification.confidence,
            field_scores=extracted.field_scores,
            source=self.name,
        )

    async def ping(self) -> None:
        await self._client.ping()
