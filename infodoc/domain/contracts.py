from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from infodoc.domain.models import BatchRow, WriteResult


@runtime_checkable
class DocumentStore(Protocol):
    """Async document store contract with optimistic concurrency.

    Every successful write assigns a new `_rev`; a write whose `_rev` does not
    match the stored one is a conflict. Batch operations are not atomic: each
    item succeeds or fails on its own and results keep input order.
    """

    name: str

    # Raises DocumentNotFoundError for absent or deleted documents.
    async def get(self, doc_id: str) -> dict[str, Any]: ...

    # Raises DocumentConflictError on a revision mismatch.
    async def put(self, doc: dict[str, Any]) -> str: ...

    async def batch_get(self, doc_ids: list[str]) -> list[BatchRow]: ...

    async def batch_write(self, docs: list[dict[str, Any]]) -> list[WriteResult]: ...
