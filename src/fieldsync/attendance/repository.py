from __future__ import annotations

from datetime import date
from typing import Dict, Optional, Protocol

from ..common.datetime_utils import format_date
from ..core.constants import ATTENDANCE_ROOT
from ..core.exceptions import ConcurrentModificationError
from ..store.record_store import RecordStore, join_path
from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    def get(self, username: str, work_date: date) -> AttendanceRecord:
        raise NotImplementedError

    def put(self, record: AttendanceRecord, *, expected_version: Optional[int] = None) -> None:
        raise NotImplementedError

    def remove(self, username: str, work_date: date) -> None:
        raise NotImplementedError

    def get_day(self, work_date: date) -> Dict[str, AttendanceRecord]:
        """All stored records of one day keyed by username."""

        raise NotImplementedError


class StoreAttendanceRepository(AttendanceRepository):
    """Attendance documents live under ``attendance/{date}/{username}``."""

    def __init__(self, store: RecordStore):
        self._store = store

    @staticmethod
    def path(username: str, work_date: date) -> str:
        return join_path(ATTENDANCE_ROOT, format_date(work_date), username)

    def get(self, username: str, work_date: date) -> AttendanceRecord:
        data = self._store.read(self.path(username, work_date))
        return AttendanceRecord.from_dict(username, work_date, data)

    def put(self, record: AttendanceRecord, *, expected_version: Optional[int] = None) -> None:
        path = self.path(record.username, record.work_date)
        if expected_version is not None:
            current = AttendanceRecord.from_dict(record.username, record.work_date, self._store.read(path))
            if current.version != expected_version:
                raise ConcurrentModificationError(path, expected_version, current.version)
        self._store.write(path, record.to_dict())

    def remove(self, username: str, work_date: date) -> None:
        self._store.delete(self.path(username, work_date))

    def get_day(self, work_date: date) -> Dict[str, AttendanceRecord]:
        day = self._store.children(join_path(ATTENDANCE_ROOT, format_date(work_date)))
        return {
            username: AttendanceRecord.from_dict(username, work_date, data)
            for username, data in day.items()
            if isinstance(data, dict)
        }
