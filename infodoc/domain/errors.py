from __future__ import annotations


class DomainError(Exception):
    pass


class DomainValidationError(DomainError):
    pass


class StoreError(DomainError):
    """Base class for failures reported by a document store."""

    def __init__(self, message: str, *, doc_id: str | None = None) -> None:
        super().__init__(message)
        self.doc_id = doc_id


class DocumentNotFoundError(StoreError):
    pass


class DocumentConflictError(StoreError):
    pass


class StoreOperationError(StoreError):
    pass


class RetryExhaustedError(DomainError):
    def __init__(self, message: str, *, attempts: int, doc_ids: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.doc_ids = doc_ids


class MigrationWriteError(DomainError):
    def __init__(self, message: str, *, doc_id: str, error: str | None) -> None:
        super().__init__(message)
        self.doc_id = doc_id
        self.error = error
