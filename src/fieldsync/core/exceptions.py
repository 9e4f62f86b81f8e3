from __future__ import annotations

from datetime import date
from typing import Optional, Sequence


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when an update addresses a record that does not exist."""


class ConcurrentModificationError(DomainError):
    """Raised when a write carries a stale ``expected_version``."""

    def __init__(self, path: str, expected: int, actual: int):
        super().__init__(f"{path}: expected version {expected}, found {actual}")
        self.path = path
        self.expected = expected
        self.actual = actual


class StoreUnavailableError(DomainError):
    """Raised when the record store cannot complete a read/write.

    For span reconciliation the error also carries the day that failed and
    the days already written before it, so an admin can correct or retry.
    """

    def __init__(
        self,
        message: str,
        *,
        path: Optional[str] = None,
        username: Optional[str] = None,
        failed_date: Optional[date] = None,
        applied_dates: Sequence[date] = (),
    ):
        super().__init__(message)
        self.path = path
        self.username = username
        self.failed_date = failed_date
        self.applied_dates = tuple(applied_dates)
