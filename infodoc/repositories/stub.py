from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from infodoc.domain.errors import DocumentConflictError, DocumentNotFoundError
from infodoc.domain.error_taxonomy import CONFLICT, NOT_FOUND
from infodoc.domain.ids import new_revision_token
from infodoc.domain.models import BatchRow, WriteResult
from infodoc.repositories.revisions import materialize, next_generation, split_document


@dataclass
class _StoredDocument:
    rev: str
    body: dict[str, Any]
    deleted: bool = False


@dataclass
class InMemoryDocumentStore:
    """Non-network document store with CouchDB-style revision semantics.

    `calls` records every operation with the ids it touched so tests can assert
    on round trips.
    """

    name: str = "memory"
    documents: dict[str, _StoredDocument] = field(default_factory=dict)
    calls: list[tuple[str, tuple[str, ...]]] = field(default_factory=list)

    async def get(self, doc_id: str) -> dict[str, Any]:
        self.calls.append(("get", (doc_id,)))
        doc = self.peek(doc_id)
        if doc is None:
            raise DocumentNotFoundError("missing", doc_id=doc_id)
        return doc

    async def put(self, doc: dict[str, Any]) -> str:
        self.calls.append(("put", (str(doc.get("_id")),)))
        return self.write(doc)

    async def batch_get(self, doc_ids: list[str]) -> list[BatchRow]:
        self.calls.append(("batch_get", tuple(doc_ids)))
        rows: list[BatchRow] = []
        for doc_id in doc_ids:
            doc = self.peek(doc_id)
            if doc is None:
                rows.append(BatchRow(key=doc_id, error=NOT_FOUND))
            else:
                rows.append(BatchRow(key=doc_id, doc=doc))
        return rows

    async def batch_write(self, docs: list[dict[str, Any]]) -> list[WriteResult]:
        self.calls.append(("batch_write", tuple(str(doc.get("_id")) for doc in docs)))
        results: list[WriteResult] = []
        for doc in docs:
            doc_id = str(doc.get("_id"))
            try:
                rev = self.write(doc)
            except DocumentConflictError as exc:
                results.append(WriteResult(id=doc_id, error=CONFLICT, reason=str(exc)))
                continue
            results.append(WriteResult(id=doc_id, rev=rev))
        return results

    def write(self, doc: dict[str, Any]) -> str:
        """Apply one write synchronously; also used by tests to seed state."""
        doc_id, incoming_rev, deleted, body = split_document(doc)
        current = self.documents.get(doc_id)
        generation = next_generation(
            doc_id=doc_id,
            current_rev=current.rev if current is not None else None,
            current_deleted=current.deleted if current is not None else False,
            incoming_rev=incoming_rev,
        )
        rev = new_revision_token(generation)
        self.documents[doc_id] = _StoredDocument(rev=rev, body=copy.deepcopy(body), deleted=deleted)
        return rev

    def peek(self, doc_id: str) -> dict[str, Any] | None:
        stored = self.documents.get(doc_id)
        if stored is None or stored.deleted:
            return None
        return materialize(doc_id, stored.rev, copy.deepcopy(stored.body))

    def is_deleted(self, doc_id: str) -> bool:
        stored = self.documents.get(doc_id)
        return stored is not None and stored.deleted

    def count(self, operation: str) -> int:
        return sum(1 for name, _ in self.calls if name == operation)

    def ids_for(self, operation: str) -> list[tuple[str, ...]]:
        return [ids for name, ids in self.calls if name == operation]
