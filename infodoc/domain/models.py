from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any

from infodoc.domain.ids import to_owner_id, to_record_id

INFO_DOC_TYPE = "info"
UNKNOWN_DATE = "unknown"

# Keys with a dedicated InfoDoc attribute; everything else round-trips through `extra`.
_MODELLED_KEYS = frozenset(
    {
        "_id",
        "_rev",
        "_deleted",
        "type",
        "doc_id",
        "initial_replication_date",
        "latest_replication_date",
        "transitions",
        "muting_history",
    }
)


@dataclass(frozen=True)
class TransitionOutcome:
    last_rev: str | None
    seq: str | int | None
    ok: bool

    def to_document(self) -> dict[str, Any]:
        return {"last_rev": self.last_rev, "seq": self.seq, "ok": self.ok}

    @classmethod
    def from_document(cls, raw: Any) -> TransitionOutcome:
        if not isinstance(raw, dict):
            return cls(last_rev=None, seq=None, ok=bool(raw))
        return cls(last_rev=raw.get("last_rev"), seq=raw.get("seq"), ok=bool(raw.get("ok", False)))


Transitions = dict[str, TransitionOutcome]


@dataclass
class InfoDoc:
    """Replication and processing metadata for one owner document.

    `legacy_sourced` is in-memory only: it marks a record adopted from the legacy
    store during resolution and is never written to any store.
    """

    id: str
    doc_id: str
    rev: str | None = None
    initial_replication_date: datetime | None = None
    latest_replication_date: datetime | None = None
    transitions: Transitions | None = None
    muting_history: list[Any] | None = None
    extra: dict[str, Any] = field(default_factory=dict)
    deleted: bool = False
    legacy_sourced: bool = False

    def to_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = dict(self.extra)
        doc["_id"] = self.id
        if self.rev is not None:
            doc["_rev"] = self.rev
        doc["type"] = INFO_DOC_TYPE
        doc["doc_id"] = self.doc_id
        doc["initial_replication_date"] = _format_date(self.initial_replication_date)
        doc["latest_replication_date"] = _format_date(self.latest_replication_date)
        if self.transitions is not None:
            doc["transitions"] = {name: outcome.to_document() for name, outcome in self.transitions.items()}
        if self.muting_history is not None:
            doc["muting_history"] = list(self.muting_history)
        if self.deleted:
            doc["_deleted"] = True
        return doc

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> InfoDoc:
        record_id = str(doc["_id"])
        raw_transitions = doc.get("transitions")
        transitions: Transitions | None = None
        if isinstance(raw_transitions, dict):
            transitions = {
                str(name): TransitionOutcome.from_document(raw) for name, raw in raw_transitions.items()
            }
        raw_muting = doc.get("muting_history")
        return cls(
            id=record_id,
            doc_id=str(doc.get("doc_id") or to_owner_id(record_id)),
            rev=doc.get("_rev"),
            initial_replication_date=_parse_date(doc.get("initial_replication_date")),
            latest_replication_date=_parse_date(doc.get("latest_replication_date")),
            transitions=transitions,
            muting_history=list(raw_muting) if isinstance(raw_muting, list) else None,
            extra={key: value for key, value in doc.items() if key not in _MODELLED_KEYS},
            deleted=bool(doc.get("_deleted", False)),
        )

    def adopted_from_legacy(self) -> InfoDoc:
        # Legacy revisions mean nothing to the canonical store; insert fresh.
        return replace(
            self,
            rev=None,
            transitions=dict(self.transitions) if self.transitions is not None else None,
            extra=dict(self.extra),
            legacy_sourced=True,
        )

    def tombstone(self) -> dict[str, Any]:
        return {"_id": self.id, "_rev": self.rev, "_deleted": True}


def blank_info_doc(owner_id: str, known_replication_date: datetime | None = None) -> InfoDoc:
    return InfoDoc(
        id=to_record_id(owner_id),
        doc_id=owner_id,
        initial_replication_date=known_replication_date,
        latest_replication_date=known_replication_date,
    )


@dataclass
class Change:
    """One change-feed event for an owner document.

    `info` accumulates the pending metadata the processing engine will persist.
    """

    id: str
    seq: str | int | None = None
    doc: dict[str, Any] | None = None
    info: InfoDoc | None = None
    deleted: bool = False

    @property
    def owner_revision(self) -> str | None:
        if self.doc is None:
            return None
        rev = self.doc.get("_rev")
        return str(rev) if rev is not None else None

    def embedded_transitions(self) -> Transitions | None:
        # Owner documents written before info docs existed carried their own transitions.
        if self.doc is None:
            return None
        raw = self.doc.get("transitions")
        if not isinstance(raw, dict) or not raw:
            return None
        return {str(name): TransitionOutcome.from_document(value) for name, value in raw.items()}


@dataclass(frozen=True)
class BatchRow:
    key: str
    doc: dict[str, Any] | None = None
    error: str | None = None


@dataclass(frozen=True)
class WriteResult:
    id: str
    rev: str | None = None
    error: str | None = None
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.rev is not None


@dataclass
class BatchWriteReport:
    written: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    rounds: int = 0

    @property
    def ok(self) -> bool:
        return not self.failed


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


def _format_date(value: datetime | None) -> str:
    if value is None:
        return UNKNOWN_DATE
    return value.isoformat()


def _parse_date(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or value == UNKNOWN_DATE:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None
