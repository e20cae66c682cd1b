from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from infodoc.domain.models import InfoDoc


class ErrorResponse(BaseModel):
    detail: str


class HealthResponse(BaseModel):
    status: str
    service: str
    mode: str


class ReadyResponse(BaseModel):
    status: str
    service: str
    mode: str
    canonical_store: str
    legacy_store: str
    background_tasks: int


class WrittenDocument(BaseModel):
    """Outcome of one owner-document write as reported by the gateway."""

    id: str = Field(min_length=1, max_length=512)
    ok: bool = False
    deleted: bool = False
    error: str | None = None


class WriteNotificationRequest(BaseModel):
    docs: list[WrittenDocument] = Field(min_length=1)
    bulk: bool = False

    @model_validator(mode="after")
    def single_write_has_one_doc(self) -> WriteNotificationRequest:
        if not self.bulk and len(self.docs) != 1:
            raise ValueError("a single write notification must carry exactly one doc")
        return self


class WriteNotificationResponse(BaseModel):
    recorded: list[str]
    skipped: list[str]
    failed: dict[str, str] = Field(default_factory=dict)


class TransitionOutcomeResponse(BaseModel):
    last_rev: str | None = None
    seq: str | int | None = None
    ok: bool


class InfoDocResponse(BaseModel):
    id: str
    doc_id: str
    rev: str | None = None
    initial_replication_date: str
    latest_replication_date: str
    transitions: dict[str, TransitionOutcomeResponse] | None = None

    @classmethod
    def from_info_doc(cls, info_doc: InfoDoc) -> InfoDocResponse:
        doc = info_doc.to_document()
        return cls(
            id=info_doc.id,
            doc_id=info_doc.doc_id,
            rev=info_doc.rev,
            initial_replication_date=doc["initial_replication_date"],
            latest_replication_date=doc["latest_replication_date"],
            transitions=doc.get("transitions"),
        )
