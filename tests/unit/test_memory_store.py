from datetime import UTC, datetime, timedelta

import pytest

from bol_triage.documents.exceptions import DocumentNotFoundError, StaleGenerationError
from bol_triage.documents.models import DocumentDraft, DocumentStatus
from bol_triage.store.memory_store import InMemoryDocumentStore


def _make_store() -> InMemoryDocumentStore:
    """Store with a clock that advances one second per upload."""
    start = datetime(2024, 12, 1, tzinfo=UTC)
    ticks = iter(range(1000))
    return InMemoryDocumentStore(clock=lambda: start + timedelta(seconds=next(ticks)))


def _draft(name: str = "sample.pdf") -> DocumentDraft:
    return DocumentDraft(filename=name, file_size=2048, mime_type="application/pdf")


class TestCreate:
    async def test_assigns_incrementing_ids(self) -> None:
        store = _make_store()
        first = await store.create(_draft("a.pdf"))
        second = await store.create(_draft("b.pdf"))
        assert (first.id, second.id) == (1, 2)

    async def test_new_document_defaults(self) -> None:
        store = _make_store()
        document = await store.create(_draft())
        assert document.status == DocumentStatus.PROCESSING
        assert document.processing_progress == 10
        assert document.extracted_data is None
        assert document.uploaded_at == datetime(2024, 12, 1, tzinfo=UTC)


class TestGetAndList:
    async def test_get_unknown_raises(self) -> None:
        store = _make_store()
        with pytest.raises(DocumentNotFoundError, match="Document 42 not found"):
            await store.get(42)

    async def test_list_all_newest_first(self) -> None:
        store = _make_store()
        for name in ("a.pdf", "b.pdf", "c.pdf"):
            await store.create(_draft(name))
        names = [d.filename for d in await store.list_all()]
        assert names == ["c.pdf", "b.pdf", "a.pdf"]

    async def test_list_by_status_filters(self) -> None:
        store = _make_store()
        first = await store.create(_draft("a.pdf"))
        await store.create(_draft("b.pdf"))
        await store.update(first.id, {"status": DocumentStatus.UNPROCESSED})
        unprocessed = await store.list_by_status(DocumentStatus.UNPROCESSED)
        assert [d.id for d in unprocessed] == [first.id]

    async def test_same_timestamp_orders_by_id(self) -> None:
        fixed = datetime(2024, 12, 1, tzinfo=UTC)
        store = InMemoryDocumentStore(clock=lambda: fixed)
        await store.create(_draft("a.pdf"))
        await store.create(_draft("b.pdf"))
        assert [d.id for d in await store.list_all()] == [2, 1]


class TestUpdate:
    async def test_shallow_merges_changes(self) -> None:
        store = _make_store()
        document = await store.create(_draft())
        updated = await store.update(document.id, {"processing_progress": 25})
        assert updated.processing_progress == 25
        assert updated.filename == "sample.pdf"
        assert (await store.get(document.id)).processing_progress == 25

    async def test_unknown_document_raises(self) -> None:
        store = _make_store()
        with pytest.raises(DocumentNotFoundError):
            await store.update(7, {"processing_progress": 25})

    async def test_rejects_unknown_field(self) -> None:
        store = _make_store()
        document = await store.create(_draft())
        with pytest.raises(ValueError, match="Cannot update fields"):
            await store.update(document.id, {"colour": "red"})

    async def test_rejects_id_change(self) -> None:
        store = _make_store()
        document = await store.create(_draft())
        with pytest.raises(ValueError):
            await store.update(document.id, {"id": 99})

    async def test_matching_generation_applies(self) -> None:
        store = _make_store()
        document = await store.create(_draft())
        updated = await store.update(
            document.id, {"processing_progress": 60}, expected_generation=1
        )
        assert updated.processing_progress == 60

    async def test_stale_generation_raises_and_leaves_document(self) -> None:
        store = _make_store()
        document = await store.create(_draft())
        await store.update(document.id, {"generation": 2})
        with pytest.raises(StaleGenerationError):
            await store.update(document.id, {"processing_progress": 60}, expected_generation=1)
        assert (await store.get(document.id)).processing_progress == 10


class TestDelete:
    async def test_delete_existing(self) -> None:
        store = _make_store()
        document = await store.create(_draft())
        assert await store.delete(document.id) is True
        with pytest.raises(DocumentNotFoundError):
            await store.get(document.id)

    async def test_delete_missing_returns_false(self) -> None:
        store = _make_store()
        assert await store.delete(5) is False

    async def test_ids_are_not_reused(self) -> None:
        store = _make_store()
        document = await store.create(_draft())
        await store.delete(document.id)
        assert (await store.create(_draft())).id == 2
