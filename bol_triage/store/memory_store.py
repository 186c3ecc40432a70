import dataclasses
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from bol_triage.documents.exceptions import DocumentNotFoundError, StaleGenerationError
from bol_triage.documents.models import Document, DocumentDraft, DocumentStatus
from bol_triage.store.base import BaseDocumentStore

_UPDATABLE_FIELDS = frozenset(f.name for f in dataclasses.fields(Document)) - {"id"}


def utc_now() -> datetime:
    return datetime.now(UTC)


class InMemoryDocumentStore(BaseDocumentStore):
    """Process-local store keyed by monotonically assigned integer ids."""

    def __init__(self, clock: Callable[[], datetime] = utc_now) -> None:
        self._documents: dict[int, Document] = {}
        self._next_id = 1
        self._clock = clock

    async def create(self, draft: DocumentDraft) -> Document:
        document = Document(
            id=self._next_id,
            filename=draft.filename,
            file_size=draft.file_size,
            mime_type=draft.mime_type,
            uploaded_at=self._clock(),
        )
        self._next_id += 1
        self._documents[document.id] = document
        return document

    async def get(self, document_id: int) -> Document:
        document = self._documents.get(document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return document

    async def list_all(self) -> list[Document]:
        return self._newest_first(self._documents.values())

    async def list_by_status(self, status: DocumentStatus) -> list[Document]:
        return self._newest_first(d for d in self._documents.values() if d.status == status)

    async def update(
        self,
        document_id: int,
        changes: dict[str, Any],
        *,
        expected_generation: int | None = None,
    ) -> Document:
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")
        current = await self.get(document_id)
        if expected_generation is not None and current.generation != expected_generation:
            raise StaleGenerationError(
                f"Document {document_id} is on generation {current.generation}, "
                f"not {expected_generation}"
            )
        updated = dataclasses.replace(current, **changes)
        self._documents[document_id] = updated
        return updated

    async def delete(self, document_id: int) -> bool:
        return self._documents.pop(document_id, None) is not None

    @staticmethod
    def _newest_first(documents: Any) -> list[Document]:
        return sorted(documents, key=lambda d: (d.uploaded_at, d.id), reverse=True)
