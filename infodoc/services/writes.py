from __future__ import annotations

from datetime import datetime
import logging

from infodoc.domain.contracts import DocumentStore
from infodoc.domain.errors import DocumentConflictError, DocumentNotFoundError, RetryExhaustedError
from infodoc.domain.ids import to_record_id
from infodoc.domain.models import InfoDoc, blank_info_doc
from infodoc.services.retry import RetryPolicy

COMPONENT_ID = "infodoc.record_write"

logger = logging.getLogger("infodoc")


async def record_write(
    store: DocumentStore,
    owner_id: str,
    timestamp: datetime,
    *,
    policy: RetryPolicy,
) -> InfoDoc:
    """Stamp a replication date on the owner's info doc, creating it if needed."""
    record_id = to_record_id(owner_id)
    for attempt in range(1, policy.max_attempts + 1):
        info_doc = await fetch_info_doc(store, record_id)
        if info_doc is None:
            info_doc = blank_info_doc(owner_id, timestamp)
        else:
            info_doc.latest_replication_date = timestamp

        try:
            info_doc.rev = await store.put(info_doc.to_document())
        except DocumentConflictError:
            logger.debug(
                "info doc write conflicted, refetching",
                extra={"info_doc_id": record_id, "attempt": attempt},
            )
            await policy.backoff(attempt)
            continue
        return info_doc

    raise RetryExhaustedError(
        f"gave up recording write for {owner_id} after {policy.max_attempts} attempts",
        attempts=policy.max_attempts,
        doc_ids=(record_id,),
    )


async def delete_info_doc(store: DocumentStore, owner_id: str) -> bool:
    record_id = to_record_id(owner_id)
    info_doc = await fetch_info_doc(store, record_id)
    if info_doc is None:
        return False
    await store.put(info_doc.tombstone())
    logger.info("info doc deleted", extra={"info_doc_id": record_id})
    return True


async def fetch_info_doc(store: DocumentStore, record_id: str) -> InfoDoc | None:
    try:
        doc = await store.get(record_id)
    except DocumentNotFoundError:
        return None
    return InfoDoc.from_document(doc)
