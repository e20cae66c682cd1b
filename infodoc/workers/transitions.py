from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
import logging

from infodoc.domain.models import Change
from infodoc.services.info_docs import InfoDocService

TransitionHandler = Callable[[Change], Awaitable[bool]]
TransitionFilter = Callable[[Change], bool]

COMPONENT_ID = "worker.transitions.process_changes"

logger = logging.getLogger("infodoc")


def _always(change: Change) -> bool:
    del change
    return True


@dataclass(frozen=True)
class Transition:
    name: str
    run: TransitionHandler
    applies: TransitionFilter = _always


@dataclass(frozen=True)
class ChangeOutcome:
    change_id: str
    ran: tuple[str, ...] = ()
    persisted: bool = False
    deleted: bool = False


@dataclass
class TransitionRunner:
    """Processor-side driver: resolve info docs, run transitions, record outcomes."""

    service: InfoDocService
    transitions: list[Transition] = field(default_factory=list)

    async def process_changes(self, changes: list[Change]) -> list[ChangeOutcome]:
        outcomes: list[ChangeOutcome] = []
        live: list[Change] = []
        for change in changes:
            if change.deleted:
                removed = await self.service.delete_for_owner(change)
                outcomes.append(ChangeOutcome(change_id=change.id, deleted=removed))
            else:
                live.append(change)

        info_docs = await self.service.resolve_many(live)
        info_by_owner = {info_doc.doc_id: info_doc for info_doc in info_docs}
        for change in live:
            change.info = info_by_owner[change.id]
            ran = await self._run_transitions(change)
            if ran:
                await self.service.persist_transitions(change)
            outcomes.append(ChangeOutcome(change_id=change.id, ran=ran, persisted=bool(ran)))
        return outcomes

    async def _run_transitions(self, change: Change) -> tuple[str, ...]:
        ran: list[str] = []
        for transition in self.transitions:
            if not transition.applies(change) or self._already_ran(change, transition.name):
                continue
            try:
                ok = await transition.run(change)
            except Exception:
                logger.exception(
                    "transition failed",
                    extra={"doc_id": change.id, "task": transition.name},
                )
                ok = False
            self.service.stamp_outcome(change, transition.name, ok)
            ran.append(transition.name)
        return tuple(ran)

    @staticmethod
    def _already_ran(change: Change, name: str) -> bool:
        # A successful run against this exact owner revision never needs repeating.
        if change.owner_revision is None or change.info is None or not change.info.transitions:
            return False
        previous = change.info.transitions.get(name)
        return previous is not None and previous.ok and previous.last_rev == change.owner_revision
