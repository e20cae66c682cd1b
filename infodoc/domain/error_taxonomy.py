from __future__ import annotations

from typing import Literal

# Per-item error vocabulary reported by batch store operations.
WriteErrorCode = Literal[
    "not_found",
    "conflict",
    "forbidden",
    "bad_request",
    "internal_error",
]

WriteErrorClassification = Literal["create", "retry", "fatal"]

CANONICAL_WRITE_ERROR_CODES: tuple[WriteErrorCode, ...] = (
    "not_found",
    "conflict",
    "forbidden",
    "bad_request",
    "internal_error",
)

CONFLICT: WriteErrorCode = "conflict"
NOT_FOUND: WriteErrorCode = "not_found"


def is_canonical_write_error(code: str) -> bool:
    return code in CANONICAL_WRITE_ERROR_CODES


def classify_write_error(code: str | None) -> WriteErrorClassification:
    # not_found only ever feeds the create branch of get-or-create flows.
    if code == NOT_FOUND:
        return "create"
    if code == CONFLICT:
        return "retry"
    return "fatal"


def resolve_write_error(code: str | None) -> WriteErrorCode:
    if code is not None and is_canonical_write_error(code):
        return code  # type: ignore[return-value]
    return "internal_error"
