import asyncio

import pytest

from infodoc.domain.contracts import DocumentStore
from infodoc.domain.errors import DocumentConflictError, DocumentNotFoundError, StoreOperationError
from infodoc.domain.ids import revision_generation
from infodoc.repositories.stub import InMemoryDocumentStore


@pytest.mark.unit
def test_in_memory_store_satisfies_contract() -> None:
    assert isinstance(InMemoryDocumentStore(), DocumentStore)


@pytest.mark.unit
def test_put_requires_matching_revision() -> None:
    store = InMemoryDocumentStore()

    async def _run() -> None:
        rev = await store.put({"_id": "a", "value": 1})
        assert revision_generation(rev) == 1

        with pytest.raises(DocumentConflictError):
            await store.put({"_id": "a", "value": 2})
        with pytest.raises(DocumentConflictError):
            await store.put({"_id": "a", "_rev": "1-stale", "value": 2})

        next_rev = await store.put({"_id": "a", "_rev": rev, "value": 2})
        assert revision_generation(next_rev) == 2
        assert await store.get("a") == {"_id": "a", "_rev": next_rev, "value": 2}

    asyncio.run(_run())


@pytest.mark.unit
def test_deleted_documents_read_as_missing_and_can_be_recreated() -> None:
    store = InMemoryDocumentStore()

    async def _run() -> None:
        rev = await store.put({"_id": "a"})
        await store.put({"_id": "a", "_rev": rev, "_deleted": True})

        with pytest.raises(DocumentNotFoundError):
            await store.get("a")
        rows = await store.batch_get(["a"])
        assert rows[0].doc is None
        assert rows[0].error == "not_found"
        assert store.is_deleted("a") is True

        recreated = await store.put({"_id": "a", "fresh": True})
        assert revision_generation(recreated) == 3

    asyncio.run(_run())


@pytest.mark.unit
def test_batch_operations_keep_input_order_and_report_per_item() -> None:
    store = InMemoryDocumentStore()
    store.write({"_id": "b"})

    async def _run() -> None:
        rows = await store.batch_get(["c", "b", "a"])
        assert [row.key for row in rows] == ["c", "b", "a"]
        assert [row.doc is not None for row in rows] == [False, True, False]

        results = await store.batch_write([{"_id": "a"}, {"_id": "b"}, {"_id": "c"}])
        assert [result.id for result in results] == ["a", "b", "c"]
        assert [result.ok for result in results] == [True, False, True]
        assert results[1].error == "conflict"

    asyncio.run(_run())
    assert store.ids_for("batch_write") == [("a", "b", "c")]


@pytest.mark.unit
def test_documents_without_id_are_rejected() -> None:
    store = InMemoryDocumentStore()

    with pytest.raises(StoreOperationError):
        asyncio.run(store.put({"value": 1}))


@pytest.mark.unit
def test_stored_documents_are_isolated_from_caller_mutation() -> None:
    store = InMemoryDocumentStore()
    doc = {"_id": "a", "nested": {"x": 1}}
    store.write(doc)
    doc["nested"]["x"] = 2

    peeked = store.peek("a")
    assert peeked is not None
    assert peeked["nested"] == {"x": 1}
