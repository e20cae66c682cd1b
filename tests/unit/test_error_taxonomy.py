import pytest

from infodoc.domain.error_taxonomy import (
    classify_write_error,
    is_canonical_write_error,
    resolve_write_error,
)


@pytest.mark.unit
def test_canonical_write_error_codes_are_enforced() -> None:
    assert is_canonical_write_error("conflict") is True
    assert is_canonical_write_error("teapot") is False


@pytest.mark.unit
def test_classification_separates_create_retry_and_fatal() -> None:
    assert classify_write_error("not_found") == "create"
    assert classify_write_error("conflict") == "retry"
    assert classify_write_error("forbidden") == "fatal"
    assert classify_write_error(None) == "fatal"


@pytest.mark.unit
def test_unknown_codes_resolve_to_internal_error() -> None:
    assert resolve_write_error("forbidden") == "forbidden"
    assert resolve_write_error("teapot") == "internal_error"
    assert resolve_write_error(None) == "internal_error"
