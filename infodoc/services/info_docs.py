from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
import logging

from infodoc.domain.contracts import DocumentStore
from infodoc.domain.ids import to_record_id
from infodoc.domain.models import BatchWriteReport, Change, InfoDoc, TransitionOutcome, utc_now
from infodoc.services import batch, resolver, transitions, writes
from infodoc.services.background import BackgroundTasks
from infodoc.services.retry import RetryPolicy

logger = logging.getLogger("infodoc")


@dataclass
class InfoDocService:
    """Entry point for both writers of info docs.

    The write path calls `record_write(s)`; the transition processor calls
    `resolve(_many)`, `stamp_outcome`, `persist_transitions` / `bulk_update`
    and `delete_for_owner`.
    """

    canonical: DocumentStore
    legacy: DocumentStore
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    background: BackgroundTasks = field(default_factory=BackgroundTasks)

    async def get(self, owner_id: str) -> InfoDoc | None:
        return await writes.fetch_info_doc(self.canonical, to_record_id(owner_id))

    async def record_write(self, owner_id: str, timestamp: datetime | None = None) -> InfoDoc:
        return await writes.record_write(
            self.canonical,
            owner_id,
            timestamp or utc_now(),
            policy=self.retry_policy,
        )

    async def record_writes(self, owner_ids: list[str], timestamp: datetime | None = None) -> BatchWriteReport:
        return await batch.record_writes(
            self.canonical,
            owner_ids,
            timestamp or utc_now(),
            policy=self.retry_policy,
        )

    async def resolve(self, change: Change) -> InfoDoc:
        (info_doc,) = await self.resolve_many([change])
        return info_doc

    async def resolve_many(self, changes: list[Change]) -> list[InfoDoc]:
        return await resolver.resolve_info_docs(
            self.canonical,
            self.legacy,
            changes,
            background=self.background,
        )

    def stamp_outcome(self, change: Change, transition: str, ok: bool) -> TransitionOutcome:
        return transitions.stamp_outcome(change, transition, ok)

    async def persist_transitions(self, change: Change) -> InfoDoc:
        return await transitions.persist_transitions(self.canonical, change, policy=self.retry_policy)

    async def bulk_update(self, info_docs: list[InfoDoc]) -> BatchWriteReport:
        legacy_ids = {info_doc.id for info_doc in info_docs if info_doc.legacy_sourced}
        report = await batch.bulk_update(self.canonical, info_docs, policy=self.retry_policy)
        retire = [record_id for record_id in report.written if record_id in legacy_ids]
        if retire:
            self.background.spawn(
                resolver.retire_legacy_ids(self.legacy, retire),
                label=f"retire-legacy-info-docs:{len(retire)}",
            )
        retired = set(retire)
        for info_doc in info_docs:
            if info_doc.id in retired:
                info_doc.legacy_sourced = False
        return report

    async def delete_for_owner(self, change: Change) -> bool:
        return await writes.delete_info_doc(self.canonical, change.id)

    async def wait_for_background_tasks(self) -> None:
        await self.background.drain()


def initialize(
    canonical: DocumentStore,
    legacy: DocumentStore,
    *,
    retry_policy: RetryPolicy | None = None,
) -> InfoDocService:
    logger.info(
        "info doc service initialized",
        extra={"store": f"{canonical.name}+{legacy.name}"},
    )
    return InfoDocService(
        canonical=canonical,
        legacy=legacy,
        retry_policy=retry_policy or RetryPolicy(),
    )
