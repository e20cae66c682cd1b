from __future__ import annotations

from typing import Any

from infodoc.domain.errors import DocumentConflictError, StoreOperationError
from infodoc.domain.ids import revision_generation

# Store-managed keys that never land in a persisted body.
RESERVED_KEYS = ("_id", "_rev", "_deleted")


def next_generation(
    *,
    doc_id: str,
    current_rev: str | None,
    current_deleted: bool,
    incoming_rev: str | None,
) -> int:
    """Validate an incoming write against the stored revision.

    A tombstoned document may be recreated without a revision, like a fresh
    insert. Any other mismatch is a conflict.
    """
    if current_rev is None:
        if incoming_rev is not None:
            raise DocumentConflictError("Document update conflict.", doc_id=doc_id)
        return 1
    if current_deleted and incoming_rev is None:
        return revision_generation(current_rev) + 1
    if incoming_rev != current_rev:
        raise DocumentConflictError("Document update conflict.", doc_id=doc_id)
    return revision_generation(current_rev) + 1


def split_document(doc: dict[str, Any]) -> tuple[str, str | None, bool, dict[str, Any]]:
    doc_id = doc.get("_id")
    if not isinstance(doc_id, str) or not doc_id:
        raise StoreOperationError("document is missing _id")
    body = {key: value for key, value in doc.items() if key not in RESERVED_KEYS}
    return doc_id, doc.get("_rev"), bool(doc.get("_deleted", False)), body


def materialize(doc_id: str, rev: str, body: dict[str, Any]) -> dict[str, Any]:
    return {"_id": doc_id, "_rev": rev, **body}
