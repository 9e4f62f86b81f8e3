from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional

from ..common.datetime_utils import format_date, format_timestamp, parse_timestamp
from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one user's attendance state for one calendar day.

    ``version == 0`` marks a synthesized not_marked record that has never
    been written to the store.
    """

    username: str
    work_date: date
    status: AttendanceStatus
    marked_at: Optional[datetime] = None
    version: int = 0

    @classmethod
    def not_marked(cls, username: str, work_date: date) -> "AttendanceRecord":
        return cls(username=username, work_date=work_date, status=AttendanceStatus.NOT_MARKED)

    @property
    def is_stored(self) -> bool:
        return self.version > 0

    @property
    def is_gap(self) -> bool:
        return self.status == AttendanceStatus.NOT_MARKED

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "markedAt": format_timestamp(self.marked_at),
            "version": self.version,
        }

    def to_view(self) -> dict[str, Any]:
        return {"username": self.username, "date": format_date(self.work_date), **self.to_dict()}

    @classmethod
    def from_dict(cls, username: str, work_date: date, data: Optional[dict]) -> "AttendanceRecord":
        if not data:
            return cls.not_marked(username, work_date)
        return cls(
            username=username,
            work_date=work_date,
            status=AttendanceStatus(data.get("status") or AttendanceStatus.NOT_MARKED.value),
            marked_at=parse_timestamp(data.get("markedAt")),
            # Documents written before versioning count as version 1.
            version=int(data.get("version") or 1),
        )
