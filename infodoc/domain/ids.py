from __future__ import annotations

import importlib

from infodoc.domain.errors import DomainValidationError

ulid_module = importlib.import_module("ulid")

INFO_DOC_SUFFIX = "-info"


def to_record_id(owner_id: str) -> str:
    return f"{owner_id}{INFO_DOC_SUFFIX}"


def to_owner_id(record_id: str) -> str:
    if not is_record_id(record_id):
        raise DomainValidationError(f"not an info doc id: {record_id!r}")
    return record_id[: -len(INFO_DOC_SUFFIX)]


def is_record_id(doc_id: str) -> bool:
    return doc_id.endswith(INFO_DOC_SUFFIX)


def new_revision_token(generation: int) -> str:
    return f"{generation}-{ulid_module.new().str.lower()}"


def revision_generation(rev: str) -> int:
    head, _, _ = rev.partition("-")
    try:
        return int(head)
    except ValueError:
        raise DomainValidationError(f"malformed revision token: {rev!r}") from None
