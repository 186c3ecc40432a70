from typing import ClassVar

from bol_triage.config.settings import Settings
from bol_triage.store.base import BaseDocumentStore
from bol_triage.store.connection import open_pool
from bol_triage.store.memory_store import InMemoryDocumentStore
from bol_triage.store.postgres_store import PostgresDocumentStore


class DocumentStoreFactory:
    """Creates the configured document store."""

    BACKENDS: ClassVar[tuple[str, ...]] = ("memory", "postgres")

    @classmethod
    async def create(cls, settings: Settings) -> BaseDocumentStore:
        backend = settings.store_backend.lower()
        if backend == "memory":
            return InMemoryDocumentStore()
        if backend == "postgres":
            return PostgresDocumentStore(await open_pool(settings))
        raise ValueError(
            f"Unknown store backend '{backend}'. Choose from: {list(cls.BACKENDS)}"
        )
