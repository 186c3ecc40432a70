from abc import ABC, abstractmethod
from typing import Any

from bol_triage.documents.models import Document, DocumentDraft, DocumentStatus


class BaseDocumentStore(ABC):
    """Contract for document persistence backends.

    Pure data access: no business rules, no invariant derivation. Callers are
    responsible for passing consistent changes to ``update``.
    """

    @abstractmethod
    async def create(self, draft: DocumentDraft) -> Document:
        """Persist a new document in ``processing`` state and return it."""

    @abstractmethod
    async def get(self, document_id: int) -> Document:
        """Return the document with this id.

        Raises:
            DocumentNotFoundError: if no document with this id exists.
        """

    @abstractmethod
    async def list_all(self) -> list[Document]:
        """Return all documents, newest upload first."""

    @abstractmethod
    async def list_by_status(self, status: DocumentStatus) -> list[Document]:
        """Return documents in ``status``, newest upload first."""

    @abstractmethod
    async def update(
        self,
        document_id: int,
        changes: dict[str, Any],
        *,
        expected_generation: int | None = None,
    ) -> Document:
        """Shallow-merge ``changes`` into the latest stored version.

        When ``expected_generation`` is given the merge only applies if the
        stored document is still on that generation.

        Raises:
            DocumentNotFoundError: if no document with this id exists.
            StaleGenerationError: if the stored generation differs.
            ValueError: if ``changes`` names an unknown or identity field.
        """

    @abstractmethod
    async def delete(self, document_id: int) -> bool:
        """Delete a document. Returns False if it did not exist."""

    async def close(self) -> None:
        """Release backend resources. No-op unless the backend holds connections."""
