import os
from collections.abc import AsyncGenerator, Callable

import pytest

from bol_triage.config.settings import Settings
from bol_triage.extraction.base import BaseExtractor
from bol_triage.extraction.gateway import ExtractorGateway
from bol_triage.extraction.live_extractor import LiveExtractor
from bol_triage.extraction.mock_extractor import MockExtractor
from bol_triage.export.expander import MultiRecordExpander
from bol_triage.export.projector import ExportProjector
from bol_triage.store.base import BaseDocumentStore
from bol_triage.store.connection import open_pool
from bol_triage.store.memory_store import InMemoryDocumentStore
from bol_triage.store.postgres_store import PostgresDocumentStore
from bol_triage.triage.engine import TriageEngine
from bol_triage.triage.runner import ProcessingRunner
from bol_triage.triage.scheduler import ProcessingScheduler
from bol_triage.triage.service import DocumentService, build_service

ServiceFactory = Callable[..., DocumentService]


def _mock_settings(**overrides: object) -> Settings:
    fields: dict[str, object] = {
        "store_backend": "memory",
        "extractor_provider": "mock",
        "mock_flawed_ratio": 0.0,
    }
    fields.update(overrides)
    return Settings(**fields)  # type: ignore[arg-type]


@pytest.fixture
async def service() -> AsyncGenerator[DocumentService, None]:
    """Service over the in-memory store and a mock backend that never picks the flawed case."""
    svc = await build_service(_mock_settings())
    try:
        yield svc
    finally:
        await svc.close()


@pytest.fixture
def make_service() -> ServiceFactory:
    """Build a service around a custom store, live extractor or fallback."""

    def factory(
        *,
        store: BaseDocumentStore | None = None,
        live: LiveExtractor | None = None,
        fallback: BaseExtractor | None = None,
        strict_outcomes: bool = False,
    ) -> DocumentService:
        store = store or InMemoryDocumentStore()
        gateway = ExtractorGateway(
            live=live,
            fallback=fallback if fallback is not None else MockExtractor(flawed_ratio=0.0),
            provider="xtractflow" if live is not None else "mock",
        )
        engine = TriageEngine(store)
        runner = ProcessingRunner(engine, gateway, strict_outcomes=strict_outcomes)
        return DocumentService(
            store=store,
            engine=engine,
            gateway=gateway,
            scheduler=ProcessingScheduler(runner),
            expander=MultiRecordExpander(),
            projector=ExportProjector(),
        )

    return factory


@pytest.fixture
async def postgres_store() -> AsyncGenerator[PostgresDocumentStore, None]:
    os.environ.setdefault("DB_DATABASE", "bol_triage_test")
    try:
        pool = await open_pool(Settings(store_backend="postgres"), timeout=3.0)
    except Exception as e:
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to run these tests")
    store = PostgresDocumentStore(pool)
    try:
        yield store
    finally:
        await store.close()


@pytest.fixture
async def postgres_cleanup(
    postgres_store: PostgresDocumentStore,
) -> AsyncGenerator[list[int], None]:
    cleanup: list[int] = []
    yield cleanup
    for document_id in cleanup:
        await postgres_store.delete(document_id)
