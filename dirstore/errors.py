from __future__ import annotations

from enum import Enum
from pathlib import Path


class Reason(str, Enum):
    CREATE_FAILED = "create_failed"
    IO_ERROR = "io_error"
    CORRUPT = "corrupt"
    INVALID_DATATYPE = "invalid_datatype"
    DOCUMENT_TOO_LARGE = "document_too_large"
    NOT_FOUND = "not_found"
    TYPE_MISMATCH = "type_mismatch"


class StoreError(Exception):
    """
    Base error for every failed store operation.

    `reason` names the failure kind; `path` is the file or directory involved, when known.
    """

    reason: Reason = Reason.IO_ERROR

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class CreateFailed(StoreError):
    reason = Reason.CREATE_FAILED


class IOFailure(StoreError):
    reason = Reason.IO_ERROR


class Corrupt(StoreError):
    reason = Reason.CORRUPT


class InvalidDatatype(StoreError, ValueError):
    reason = Reason.INVALID_DATATYPE


class DocumentTooLarge(StoreError):
    reason = Reason.DOCUMENT_TOO_LARGE

    def __init__(self, message: str, *, path: Path | None = None, size: int = 0, limit: int = 0) -> None:
        super().__init__(message, path=path)
        self.size = size
        self.limit = limit


class NotFound(StoreError, LookupError):
    reason = Reason.NOT_FOUND


class TypeMismatch(StoreError, TypeError):
    reason = Reason.TYPE_MISMATCH
