"""
GRC Access Storage - Infrastructure Error Translation
=====================================================
Services talk to the backing store through the Django ORM. Any
DatabaseError that escapes a service is re-raised as StorageError so
callers can tell infrastructure failure apart from domain rejection.
Statement timeouts and cancellations become StorageTimeoutError and are
never read as "no lock" or "permission granted".
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from django.db import DatabaseError

_TIMEOUT_MARKERS = (
    "timeout",
    "timed out",
    "canceling statement",
    "database is locked",
    "lock wait",
)
_TIMEOUT_ERROR_NAMES = frozenset({"QueryCanceled", "LockNotAvailable"})


class StorageError(Exception):
    """Backing store failed while serving an access-core operation."""

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Storage failure during {operation}: {detail}")


class StorageTimeoutError(StorageError):
    """Backing store did not answer within its caller-imposed timeout."""


def is_timeout(exc: BaseException) -> bool:
    cause = exc.__cause__ or exc
    if type(cause).__name__ in _TIMEOUT_ERROR_NAMES:
        return True
    message = str(exc).lower()
    return any(marker in message for marker in _TIMEOUT_MARKERS)


@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    """Translate Django database errors raised inside the block."""
    try:
        yield
    except DatabaseError as exc:
        if is_timeout(exc):
            raise StorageTimeoutError(operation, str(exc)) from exc
        raise StorageError(operation, str(exc)) from exc
