from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Any, Optional

from ..common.datetime_utils import format_date, format_timestamp, parse_iso_date, parse_timestamp
from ..core.enums import LeaveStatus


@dataclass(frozen=True)
class LeaveRequest:
    username: str
    request_id: str
    start_date: date
    end_date: date
    reason: str
    status: LeaveStatus
    timestamp: datetime
    decided_by: Optional[str] = None
    decided_at: Optional[datetime] = None
    version: int = 1

    @property
    def days(self) -> int:
        return (self.end_date - self.start_date).days + 1

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def decided(self, status: LeaveStatus, *, by: str, at: datetime) -> "LeaveRequest":
        return replace(self, status=status, decided_by=by, decided_at=at, version=self.version + 1)

    def to_dict(self) -> dict[str, Any]:
        return {
            "username": self.username,
            "startDate": format_date(self.start_date),
            "endDate": format_date(self.end_date),
            "reason": self.reason,
            "status": self.status.value,
            "timestamp": format_timestamp(self.timestamp),
            "decidedBy": self.decided_by,
            "decidedAt": format_timestamp(self.decided_at),
            "version": self.version,
        }

    def to_view(self) -> dict[str, Any]:
        return {"requestId": self.request_id, **self.to_dict()}

    @classmethod
    def from_dict(cls, username: str, request_id: str, data: dict) -> "LeaveRequest":
        return cls(
            username=username,
            request_id=request_id,
            start_date=parse_iso_date(str(data["startDate"])[:10]),
            end_date=parse_iso_date(str(data["endDate"])[:10]),
            reason=data.get("reason") or "",
            status=LeaveStatus(data.get("status") or LeaveStatus.PENDING.value),
            timestamp=parse_timestamp(data.get("timestamp")) or datetime.min,
            decided_by=data.get("decidedBy"),
            decided_at=parse_timestamp(data.get("decidedAt")),
            version=int(data.get("version") or 1),
        )
