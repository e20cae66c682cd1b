from __future__ import annotations

from dataclasses import dataclass, field
import logging

from infodoc.domain.contracts import DocumentStore
from infodoc.domain.errors import DocumentNotFoundError, MigrationWriteError
from infodoc.domain.error_taxonomy import NOT_FOUND
from infodoc.domain.ids import to_owner_id, to_record_id
from infodoc.domain.models import BatchRow, Change, InfoDoc, blank_info_doc
from infodoc.services.background import BackgroundTasks
from infodoc.services.batch import info_doc_from_row

COMPONENT_ID = "infodoc.resolve"

logger = logging.getLogger("infodoc")


@dataclass
class _SplitRows:
    valid: dict[str, InfoDoc] = field(default_factory=dict)
    missing_transitions: dict[str, InfoDoc] = field(default_factory=dict)
    missing: list[str] = field(default_factory=list)


async def resolve_info_docs(
    canonical: DocumentStore,
    legacy: DocumentStore,
    changes: list[Change],
    *,
    background: BackgroundTasks,
) -> list[InfoDoc]:
    """Find or create exactly one info doc per change.

    Lookup order is the canonical store, then the legacy store, then the
    transitions embedded in the owner document itself. Anything found in the
    legacy store is moved forward: written to the canonical store here and,
    once that write succeeds, deleted from the legacy store in the background.
    Results follow the order of `changes`.
    """
    if not changes:
        return []

    changes_by_record_id = {to_record_id(change.id): change for change in changes}
    record_ids = list(changes_by_record_id)

    canonical_rows = _split_rows(await _find_rows(canonical, record_ids))
    resolved: dict[str, InfoDoc] = {**canonical_rows.valid, **canonical_rows.missing_transitions}
    lookup_in_legacy = [*canonical_rows.missing, *canonical_rows.missing_transitions]
    if not lookup_in_legacy:
        return [resolved[record_id] for record_id in record_ids]

    # A canonical doc without transitions may just be a write-path stub created
    # before the processor ever saw the owner; the history can still be in legacy.
    legacy_rows = _split_rows(await _find_rows(legacy, lookup_in_legacy))
    legacy_found = {**legacy_rows.valid, **legacy_rows.missing_transitions}
    migrated: dict[str, InfoDoc] = {}

    for record_id, legacy_doc in legacy_found.items():
        stub = canonical_rows.missing_transitions.get(record_id)
        if stub is not None:
            stub.transitions = legacy_doc.transitions
            migrated[record_id] = stub
        else:
            adopted = legacy_doc.adopted_from_legacy()
            resolved[record_id] = adopted
            migrated[record_id] = adopted

    for record_id in legacy_rows.missing:
        change = changes_by_record_id[record_id]
        info_doc = resolved.get(record_id) or blank_info_doc(to_owner_id(record_id))
        info_doc.transitions = change.embedded_transitions() or {}
        resolved[record_id] = info_doc
        migrated[record_id] = info_doc

    for info_doc in resolved.values():
        if info_doc.transitions is None:
            info_doc.transitions = {}

    if migrated:
        await _store_migrated(canonical, list(migrated.values()))

    # Legacy copies go only once their canonical copies are written.
    if legacy_found:
        background.spawn(
            retire_legacy_copies(legacy, list(legacy_found.values())),
            label=f"retire-legacy-info-docs:{len(legacy_found)}",
        )

    return [resolved[record_id] for record_id in record_ids]


async def retire_legacy_copies(legacy: DocumentStore, info_docs: list[InfoDoc]) -> int:
    tombstones = [info_doc.tombstone() for info_doc in info_docs if info_doc.rev is not None]
    if not tombstones:
        return 0
    results = await legacy.batch_write(tombstones)
    retired = 0
    for result in results:
        if result.ok:
            retired += 1
            continue
        logger.warning(
            "legacy info doc not deleted",
            extra={"info_doc_id": result.id, "error": result.error, "store": legacy.name},
        )
    return retired


async def retire_legacy_ids(legacy: DocumentStore, record_ids: list[str]) -> int:
    """Delete whatever legacy copies still exist for the given record ids."""
    if not record_ids:
        return 0
    rows = await legacy.batch_get(record_ids)
    still_present = [info_doc for info_doc in map(info_doc_from_row, rows) if info_doc is not None]
    return await retire_legacy_copies(legacy, still_present)


async def _store_migrated(canonical: DocumentStore, info_docs: list[InfoDoc]) -> None:
    results = await canonical.batch_write([info_doc.to_document() for info_doc in info_docs])
    for info_doc, result in zip(info_docs, results, strict=True):
        if not result.ok:
            raise MigrationWriteError(
                f"failed to update a modified info doc {info_doc.id}: {result.error} {result.reason or ''}".strip(),
                doc_id=info_doc.id,
                error=result.error,
            )
        info_doc.rev = result.rev
    logger.info(
        "info docs migrated",
        extra={"count": len(info_docs), "store": canonical.name},
    )


async def _find_rows(store: DocumentStore, record_ids: list[str]) -> list[BatchRow]:
    if len(record_ids) != 1:
        return await store.batch_get(record_ids)
    record_id = record_ids[0]
    try:
        doc = await store.get(record_id)
    except DocumentNotFoundError:
        return [BatchRow(key=record_id, error=NOT_FOUND)]
    return [BatchRow(key=record_id, doc=doc)]


def _split_rows(rows: list[BatchRow]) -> _SplitRows:
    split = _SplitRows()
    for row in rows:
        info_doc = info_doc_from_row(row)
        if info_doc is None:
            split.missing.append(row.key)
        elif info_doc.transitions is None:
            split.missing_transitions[row.key] = info_doc
        else:
            split.valid[row.key] = info_doc
    return split
