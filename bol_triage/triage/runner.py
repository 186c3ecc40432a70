import asyncio

from bol_triage.documents.exceptions import (
    DocumentNotFoundError,
    MalformedOutcomeError,
    StaleGenerationError,
)
from bol_triage.documents.models import Document, ErrorCode, ProcessingError, ProcessingStage
from bol_triage.extraction.gateway import ExtractorGateway
from bol_triage.logging.logger import Log
from bol_triage.triage.engine import TriageEngine


class ProcessingRunner:
    """Run one processing attempt, catch exceptions, and record the outcome."""

    def __init__(
        self,
        engine: TriageEngine,
        gateway: ExtractorGateway,
        *,
        stage_delay_seconds: float = 0.0,
        strict_outcomes: bool = False,
    ) -> None:
        self._engine = engine
        self._gateway = gateway
        self._stage_delay = stage_delay_seconds
        self._strict_outcomes = strict_outcomes

    async def run(
        self,
        document_id: int,
        generation: int,
        content: bytes,
        filename: str,
        mime_type: str,
        *,
        is_retry: bool = False,
    ) -> Document | None:
        """Drive one attempt through every stage. Returns None if it was superseded."""
        Log.info(
            "Processing document",
            document_id=document_id,
            generation=generation,
            retry=is_retry,
        )
        try:
            await self._stage(document_id, generation, ProcessingStage.TYPE_DETECTION)
            outcome = await self._gateway.extract(content, filename, mime_type)
            await self._stage(document_id, generation, ProcessingStage.FIELD_EXTRACTION)
            await self._stage(document_id, generation, ProcessingStage.DATA_VALIDATION)
            return await self._engine.apply(document_id, generation, outcome)
        except StaleGenerationError:
            Log.warning(
                "Discarding stale processing attempt",
                document_id=document_id,
                generation=generation,
            )
            return None
        except DocumentNotFoundError:
            Log.info("Document deleted during processing", document_id=document_id)
            return None
        except MalformedOutcomeError as exc:
            if self._strict_outcomes:
                Log.error(f"Malformed extraction outcome: {exc}", document_id=document_id)
                raise
            return await self._handle_failure(document_id, generation, exc, is_retry)
        except Exception as exc:
            return await self._handle_failure(document_id, generation, exc, is_retry)

    async def _stage(self, document_id: int, generation: int, stage: ProcessingStage) -> None:
        await self._engine.advance(document_id, generation, stage)
        if self._stage_delay:
            await asyncio.sleep(self._stage_delay)

    async def _handle_failure(
        self,
        document_id: int,
        generation: int,
        exc: Exception,
        is_retry: bool,
    ) -> Document | None:
        if is_retry:
            error = ProcessingError(
                code=ErrorCode.RETRY_FAILED,
                message="Document reprocessing failed",
                details=str(exc) or type(exc).__name__,
            )
        else:
            error = ProcessingError(
                code=ErrorCode.PROCESSING_FAILED,
                message="Document processing service error",
                details=str(exc) or type(exc).__name__,
            )
        try:
            return await self._engine.fail(document_id, generation, error)
        except (StaleGenerationError, DocumentNotFoundError):
            Log.warning(
                f"Could not record failure for superseded attempt: {exc}",
                document_id=document_id,
                generation=generation,
            )
            return None
