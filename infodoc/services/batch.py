from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import datetime
import logging

from infodoc.domain.contracts import DocumentStore
from infodoc.domain.errors import RetryExhaustedError, StoreOperationError
from infodoc.domain.error_taxonomy import NOT_FOUND, classify_write_error, resolve_write_error
from infodoc.domain.ids import to_owner_id, to_record_id
from infodoc.domain.models import BatchRow, BatchWriteReport, InfoDoc, blank_info_doc
from infodoc.services.retry import RetryPolicy

COMPONENT_ID_WRITES = "infodoc.record_writes"
COMPONENT_ID_BULK_UPDATE = "infodoc.bulk_update"

RefreshConflicts = Callable[[list[InfoDoc]], Awaitable[list[InfoDoc]]]

logger = logging.getLogger("infodoc")


async def record_writes(
    store: DocumentStore,
    owner_ids: list[str],
    timestamp: datetime,
    *,
    policy: RetryPolicy,
) -> BatchWriteReport:
    """Batch form of record_write; conflicts are retried by id, never by batch."""
    report = BatchWriteReport()
    unique_owner_ids = list(dict.fromkeys(owner_ids))
    if not unique_owner_ids:
        return report

    async def _load(ids: list[str]) -> list[InfoDoc]:
        rows = await store.batch_get([to_record_id(owner_id) for owner_id in ids])
        stamped: list[InfoDoc] = []
        for row in rows:
            info_doc = info_doc_from_row(row)
            if info_doc is None:
                info_doc = blank_info_doc(to_owner_id(row.key), timestamp)
            else:
                info_doc.latest_replication_date = timestamp
            stamped.append(info_doc)
        return stamped

    async def _refresh(conflicting: list[InfoDoc]) -> list[InfoDoc]:
        return await _load([info_doc.doc_id for info_doc in conflicting])

    return await write_narrowing_conflicts(
        store,
        await _load(unique_owner_ids),
        refresh=_refresh,
        policy=policy,
        report=report,
    )


async def bulk_update(
    store: DocumentStore,
    info_docs: list[InfoDoc],
    *,
    policy: RetryPolicy,
) -> BatchWriteReport:
    """Save info docs, merging engine-owned fields into fresh copies on conflict.

    Transitions are written by a single serialized processor per owner, so the
    attempted copy always carries the newest transition data. Every other field
    belongs to whoever wrote last.
    """
    report = BatchWriteReport()
    if not info_docs:
        return report

    async def _refresh(conflicting: list[InfoDoc]) -> list[InfoDoc]:
        rows = await store.batch_get([info_doc.id for info_doc in conflicting])
        return [
            rebase_onto(attempted, info_doc_from_row(row))
            for attempted, row in zip(conflicting, rows, strict=True)
        ]

    return await write_narrowing_conflicts(
        store,
        list(info_docs),
        refresh=_refresh,
        policy=policy,
        report=report,
    )


async def write_narrowing_conflicts(
    store: DocumentStore,
    info_docs: list[InfoDoc],
    *,
    refresh: RefreshConflicts,
    policy: RetryPolicy,
    report: BatchWriteReport,
) -> BatchWriteReport:
    pending = info_docs
    attempt = 0
    while pending:
        attempt += 1
        results = await store.batch_write([info_doc.to_document() for info_doc in pending])
        report.rounds += 1
        conflicting: list[InfoDoc] = []
        for info_doc, result in zip(pending, results, strict=True):
            if result.ok:
                info_doc.rev = result.rev
                report.written.append(info_doc.id)
            elif classify_write_error(result.error) == "retry":
                conflicting.append(info_doc)
            else:
                code = resolve_write_error(result.error)
                report.failed[info_doc.id] = code
                logger.warning(
                    "info doc batch write failed",
                    extra={"info_doc_id": info_doc.id, "error": code, "store": store.name},
                )

        if not conflicting:
            break
        if attempt >= policy.max_attempts:
            raise RetryExhaustedError(
                f"{len(conflicting)} info docs still conflicting after {policy.max_attempts} rounds",
                attempts=policy.max_attempts,
                doc_ids=tuple(info_doc.id for info_doc in conflicting),
            )

        logger.debug(
            "info doc batch write conflicted, narrowing",
            extra={"count": len(conflicting), "attempt": attempt, "store": store.name},
        )
        await policy.backoff(attempt)
        pending = await refresh(conflicting)
    return report


def info_doc_from_row(row: BatchRow) -> InfoDoc | None:
    if row.doc is not None:
        return InfoDoc.from_document(row.doc)
    if row.error is None or row.error == NOT_FOUND:
        return None
    raise StoreOperationError(f"failed to read {row.key}: {row.error}", doc_id=row.key)


def rebase_onto(attempted: InfoDoc, fresh: InfoDoc | None) -> InfoDoc:
    """Move `attempted` onto the stored revision, keeping its engine-owned fields.

    Mutates in place so callers holding the record see the final revision.
    """
    if fresh is None:
        # Deleted underneath us; recreate from what we tried to write.
        attempted.rev = None
        return attempted
    attempted.rev = fresh.rev
    attempted.initial_replication_date = fresh.initial_replication_date
    attempted.latest_replication_date = fresh.latest_replication_date
    attempted.extra = fresh.extra
    if attempted.transitions is None:
        attempted.transitions = fresh.transitions
    if attempted.muting_history is None:
        attempted.muting_history = fresh.muting_history
    return attempted
