from __future__ import annotations

from infodoc.api.handlers.deps import ApiDeps
from infodoc.api.schemas import WriteNotificationRequest, WriteNotificationResponse, WrittenDocument
from infodoc.domain.ids import to_owner_id

COMPONENT_ID = "api.record_document_writes"


def select_recordable_writes(docs: list[WrittenDocument]) -> list[str]:
    """Ids of writes that landed and were not deletes.

    A delete is not a replication event; its info doc is cleaned up when the
    processor sees the deletion.
    """
    return [doc.id for doc in docs if doc.ok and not doc.deleted]


async def record_document_writes_handler(
    *,
    request: WriteNotificationRequest,
    api_deps: ApiDeps,
) -> WriteNotificationResponse:
    recordable = select_recordable_writes(request.docs)
    recordable_ids = set(recordable)
    skipped = [doc.id for doc in request.docs if doc.id not in recordable_ids]
    if not recordable:
        return WriteNotificationResponse(recorded=[], skipped=skipped)

    if not request.bulk:
        await api_deps.service.record_write(recordable[0])
        return WriteNotificationResponse(recorded=recordable, skipped=skipped)

    report = await api_deps.service.record_writes(recordable)
    return WriteNotificationResponse(
        recorded=[to_owner_id(record_id) for record_id in report.written],
        skipped=skipped,
        failed={to_owner_id(record_id): code for record_id, code in report.failed.items()},
    )
