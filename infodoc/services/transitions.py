from __future__ import annotations

from dataclasses import replace
import logging

from infodoc.domain.contracts import DocumentStore
from infodoc.domain.errors import DocumentConflictError, RetryExhaustedError
from infodoc.domain.ids import to_record_id
from infodoc.domain.models import Change, InfoDoc, TransitionOutcome, blank_info_doc
from infodoc.services.retry import RetryPolicy
from infodoc.services.writes import fetch_info_doc

COMPONENT_ID_STAMP = "infodoc.stamp_outcome"
COMPONENT_ID_PERSIST = "infodoc.persist_transitions"

logger = logging.getLogger("infodoc")


def stamp_outcome(change: Change, transition: str, ok: bool) -> TransitionOutcome:
    """Record a transition result on the change's pending info doc. No I/O."""
    if change.info is None:
        change.info = blank_info_doc(change.id)
    if change.info.transitions is None:
        change.info.transitions = {}
    outcome = TransitionOutcome(last_rev=change.owner_revision, seq=change.seq, ok=ok)
    change.info.transitions[transition] = outcome
    return outcome


async def persist_transitions(
    store: DocumentStore,
    change: Change,
    *,
    policy: RetryPolicy,
) -> InfoDoc:
    record_id = to_record_id(change.id)
    pending = dict(change.info.transitions or {}) if change.info is not None else {}
    for attempt in range(1, policy.max_attempts + 1):
        info_doc = await fetch_info_doc(store, record_id)
        if info_doc is None:
            # Nothing stored yet: insert the resolved copy as a new document.
            fallback = change.info or blank_info_doc(change.id)
            info_doc = replace(fallback, rev=None, extra=dict(fallback.extra), legacy_sourced=False)

        info_doc.transitions = dict(pending)
        try:
            info_doc.rev = await store.put(info_doc.to_document())
        except DocumentConflictError:
            logger.debug(
                "transition save conflicted, refetching",
                extra={"info_doc_id": record_id, "attempt": attempt},
            )
            await policy.backoff(attempt)
            continue

        change.info = info_doc
        return info_doc

    raise RetryExhaustedError(
        f"gave up saving transitions for {change.id} after {policy.max_attempts} attempts",
        attempts=policy.max_attempts,
        doc_ids=(record_id,),
    )
