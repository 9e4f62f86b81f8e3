from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.constants import SALARY_ROOT
from ..core.exceptions import ConcurrentModificationError
from ..store.record_store import RecordStore, join_path
from .model import PayrollRecord


class PayrollRepository(Protocol):
    def get(self, username: str, year_month: str) -> Optional[PayrollRecord]:
        raise NotImplementedError

    def put(self, record: PayrollRecord, *, expected_version: Optional[int] = None) -> None:
        raise NotImplementedError

    def list_for_user(self, username: str) -> Sequence[PayrollRecord]:
        raise NotImplementedError


class StorePayrollRepository(PayrollRepository):
    """Payroll records live under ``salaries/{username}/{yearMonth}``."""

    def __init__(self, store: RecordStore):
        self._store = store

    @staticmethod
    def path(username: str, year_month: str) -> str:
        return join_path(SALARY_ROOT, username, year_month)

    def get(self, username: str, year_month: str) -> Optional[PayrollRecord]:
        data = self._store.read(self.path(username, year_month))
        if not data:
            return None
        return PayrollRecord.from_dict(username, year_month, data)

    def put(self, record: PayrollRecord, *, expected_version: Optional[int] = None) -> None:
        path = self.path(record.username, record.year_month)
        if expected_version is not None:
            current = self.get(record.username, record.year_month)
            actual = current.version if current else 0
            if actual != expected_version:
                raise ConcurrentModificationError(path, expected_version, actual)
        self._store.write(path, record.to_dict())

    def list_for_user(self, username: str) -> Sequence[PayrollRecord]:
        rows = self._store.children(join_path(SALARY_ROOT, username))
        return [
            PayrollRecord.from_dict(username, year_month, data)
            for year_month, data in rows.items()
            if isinstance(data, dict)
        ]
