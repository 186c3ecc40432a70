"""Operations consumed by the transport layer.

``DocumentService`` wires the store, gateway, engine and scheduler
together. Processing is fire-and-forget: ``upload`` and ``retry`` return
as soon as the document is stored in ``processing`` state.
"""

from typing import Any

from bol_triage.config.settings import Settings
from bol_triage.documents.exceptions import InvalidTransitionError
from bol_triage.documents.models import IMMUTABLE_FIELDS, Document, DocumentDraft, DocumentStatus
from bol_triage.documents.serialization import issues_from_list, record_from_dict
from bol_triage.export.expander import MultiRecordExpander
from bol_triage.export.models import ExportFormat
from bol_triage.export.projector import ExportProjector
from bol_triage.export.serializers import serialize
from bol_triage.extraction.factory import ExtractorFactory
from bol_triage.extraction.gateway import ExtractorGateway
from bol_triage.logging.logger import Log
from bol_triage.store.base import BaseDocumentStore
from bol_triage.store.factory import DocumentStoreFactory
from bol_triage.triage.engine import TriageEngine
from bol_triage.triage.runner import ProcessingRunner
from bol_triage.triage.scheduler import ProcessingScheduler
from bol_triage.triage.thresholds import TriageThresholds

_EDITABLE_FIELDS = frozenset({"status", "extracted_data", "validation_issues"})


class DocumentService:
    def __init__(
        self,
        store: BaseDocumentStore,
        engine: TriageEngine,
        gateway: ExtractorGateway,
        scheduler: ProcessingScheduler,
        expander: MultiRecordExpander,
        projector: ExportProjector,
    ) -> None:
        self._store = store
        self._engine = engine
        self._gateway = gateway
        self._scheduler = scheduler
        self._expander = expander
        self._projector = projector

    async def upload(self, content: bytes, filename: str, mime_type: str) -> Document:
        """Store a new document and schedule its processing."""
        document = await self._store.create(
            DocumentDraft(filename=filename, file_size=len(content), mime_type=mime_type)
        )
        Log.info(
            "Document uploaded",
            document_id=document.id,
            filename=filename,
            size=document.file_size,
        )
        self._scheduler.schedule(document.id, document.generation, content, filename, mime_type)
        return document

    async def list_all(self) -> list[Document]:
        return await self._store.list_all()

    async def list_by_status(self, status: DocumentStatus | str) -> list[Document]:
        return await self._store.list_by_status(DocumentStatus(status))

    async def get(self, document_id: int) -> Document:
        return await self._store.get(document_id)

    async def patch(self, document_id: int, changes: dict[str, Any]) -> Document:
        """Apply a reviewer's partial update.

        A ``status`` of ``processed`` approves the document (optionally with
        an edited ``extracted_data``), ``unprocessed`` rejects it. Without a
        status, edits are saved and the document stays in review.

        Raises:
            ValueError: if ``changes`` touches identity or non-editable fields.
            InvalidTransitionError: if the requested status is not reachable.
            DocumentNotFoundError: if the document does not exist.
        """
        immutable = IMMUTABLE_FIELDS.intersection(changes)
        if immutable:
            raise ValueError(f"Fields cannot be modified: {sorted(immutable)}")
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be patched: {sorted(unknown)}")

        edited = changes.get("extracted_data")
        if isinstance(edited, dict):
            edited = record_from_dict(edited)
        issues = changes.get("validation_issues")
        if isinstance(issues, list) and all(isinstance(issue, dict) for issue in issues):
            issues = issues_from_list(issues)

        if "status" not in changes:
            return await self._engine.revise(document_id, edited=edited, issues=issues)
        status = DocumentStatus(changes["status"])
        if status == DocumentStatus.PROCESSED:
            return await self._engine.approve(document_id, edited)
        if status == DocumentStatus.UNPROCESSED:
            return await self._engine.reject(document_id)
        raise InvalidTransitionError(f"Cannot move document {document_id} to {status}")

    async def approve(self, document_id: int, edited: Any = None) -> Document:
        if isinstance(edited, dict):
            edited = record_from_dict(edited)
        return await self._engine.approve(document_id, edited)

    async def reject(self, document_id: int) -> Document:
        return await self._engine.reject(document_id)

    async def delete(self, document_id: int) -> bool:
        self._scheduler.cancel(document_id)
        deleted = await self._store.delete(document_id)
        if deleted:
            Log.info("Document deleted", document_id=document_id)
        return deleted

    async def retry(self, document_id: int) -> Document:
        """Supersede any previous attempt and process the document again.

        The original bytes are not retained, so the retry goes through the
        fallback backend.
        """
        document = await self._engine.reset_for_retry(document_id)
        self._scheduler.schedule(
            document.id,
            document.generation,
            b"",
            document.filename,
            document.mime_type,
            is_retry=True,
        )
        return document

    async def bulk_export(self, fmt: ExportFormat | str = ExportFormat.JSON) -> bytes:
        """Export every processed document, expanding multi-BOL files."""
        documents = await self._store.list_by_status(DocumentStatus.PROCESSED)
        records = self._expander.expand_all(documents)
        Log.info("Bulk export", documents=len(documents), records=len(records), format=fmt)
        return serialize(records, fmt, self._projector)

    async def single_export(
        self,
        document_id: int,
        fmt: ExportFormat | str = ExportFormat.JSON,
    ) -> bytes:
        """Export one document with extracted data.

        Raises:
            InvalidTransitionError: if the document has nothing to export.
        """
        document = await self._store.get(document_id)
        if document.extracted_data is None:
            raise InvalidTransitionError(
                f"Document {document_id} in status {document.status} has no data to export"
            )
        return serialize(self._expander.expand(document), fmt, self._projector)

    def status(self) -> dict[str, object]:
        return self._gateway.status()

    async def test_connection(self) -> dict[str, object]:
        return await self._gateway.test_connection()

    async def drain(self) -> None:
        await self._scheduler.drain()

    async def close(self) -> None:
        self._scheduler.cancel_all()
        await self._store.close()


async def build_service(settings: Settings) -> DocumentService:
    """Wire up the service with the configured store and extraction backend."""
    store = await DocumentStoreFactory.create(settings)
    gateway = ExtractorFactory.create(settings)
    thresholds = TriageThresholds.from_settings(settings)
    engine = TriageEngine(store, thresholds)
    runner = ProcessingRunner(
        engine,
        gateway,
        stage_delay_seconds=settings.stage_delay_seconds,
        strict_outcomes=settings.strict_outcomes,
    )
    Log.info("Extraction backend ready", **gateway.status())
    return DocumentService(
        store=store,
        engine=engine,
        gateway=gateway,
        scheduler=ProcessingScheduler(runner),
        expander=MultiRecordExpander(review_below=thresholds.processed_min_confidence),
        projector=ExportProjector(),
    )
