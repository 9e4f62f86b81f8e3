from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING, Callable, Iterable, Iterator, Optional, Sequence

from ..common.datetime_utils import DateLike, as_calendar_date, format_date, iter_days, month_bounds, now_local
from ..common.validators import require_non_empty
from ..core.enums import AttendanceStatus, AuditAction
from ..core.exceptions import ValidationError
from ..core.logging import get_logger
from .model import AttendanceRecord
from .repository import AttendanceRepository

if TYPE_CHECKING:
    from ..audit.service import AuditTrail

logger = get_logger(__name__)


def parse_status(value) -> AttendanceStatus:
    try:
        return AttendanceStatus(value.value if isinstance(value, AttendanceStatus) else str(value).strip())
    except ValueError:
        allowed = ", ".join(s.value for s in AttendanceStatus)
        raise ValidationError(f"Invalid attendance status {value!r} (expected one of: {allowed})")


class AttendanceLedger:
    """Owns per-(user, date) attendance state.

    There is no state machine: any status may follow any other, admin
    authority is absolute. Leave-driven writes come through
    :meth:`overwrite` / :meth:`clear` from the reconciliation engine.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        *,
        audit: Optional["AuditTrail"] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._audit = audit
        self._clock = clock

    def get(self, username: str, work_date: DateLike) -> AttendanceRecord:
        username = require_non_empty(username, "username")
        return self._attendance.get(username, as_calendar_date(work_date))

    def mark(
        self,
        username: str,
        work_date: DateLike,
        status,
        *,
        actor: str = "admin",
        expected_version: Optional[int] = None,
    ) -> AttendanceRecord:
        """Admin mark: unconditional overwrite, stamps ``marked_at``."""
        target = parse_status(status)
        username = require_non_empty(username, "username")
        day = as_calendar_date(work_date)

        before = self._attendance.get(username, day)
        record = self.overwrite(before, target, expected_version=expected_version)

        logger.info("attendance_marked", username=username, date=format_date(day), status=target.value, actor=actor)
        if self._audit:
            self._audit.record(
                actor=actor,
                action=AuditAction.ATTENDANCE_MARKED,
                subject=f"attendance/{format_date(day)}/{username}",
                before=before.to_dict() if before.is_stored else None,
                after=record.to_dict(),
            )
        return record

    def overwrite(
        self,
        current: AttendanceRecord,
        status: AttendanceStatus,
        *,
        expected_version: Optional[int] = None,
    ) -> AttendanceRecord:
        record = AttendanceRecord(
            username=current.username,
            work_date=current.work_date,
            status=status,
            marked_at=self._clock(),
            version=current.version + 1,
        )
        self._attendance.put(record, expected_version=expected_version)
        return record

    def clear(self, username: str, work_date: DateLike) -> None:
        """Delete the stored record; the day reads back as not_marked."""
        self._attendance.remove(username, as_calendar_date(work_date))

    def range(self, username: str, start: DateLike, end: DateLike) -> Iterator[AttendanceRecord]:
        """One record per day in [start, end], synthesizing not_marked gaps.

        Returns a single-pass iterator; each call re-reads the store.
        """
        username = require_non_empty(username, "username")
        first = as_calendar_date(start, "start_date")
        last = as_calendar_date(end, "end_date")
        if first > last:
            raise ValidationError("start_date must be on or before end_date")
        return (self._attendance.get(username, day) for day in iter_days(first, last))

    def mark_all(
        self,
        work_date: DateLike,
        usernames: Iterable[str],
        status,
        *,
        actor: str = "admin",
    ) -> list[AttendanceRecord]:
        """Mark every listed user that is still not_marked on the day."""
        target = parse_status(status)
        day = as_calendar_date(work_date)
        existing = self._attendance.get_day(day)

        written: list[AttendanceRecord] = []
        for username in usernames:
            current = existing.get(username) or AttendanceRecord.not_marked(username, day)
            if not current.is_gap:
                continue
            written.append(self.overwrite(current, target))

        logger.info("attendance_mark_all", date=format_date(day), status=target.value, written=len(written), actor=actor)
        if self._audit and written:
            self._audit.record(
                actor=actor,
                action=AuditAction.ATTENDANCE_MARKED,
                subject=f"attendance/{format_date(day)}",
                before=None,
                after={"status": target.value, "usernames": [r.username for r in written]},
            )
        return written

    def daily_summary(self, work_date: DateLike, usernames: Sequence[str]) -> dict[str, int]:
        day = as_calendar_date(work_date)
        existing = self._attendance.get_day(day)
        counts = {status.value: 0 for status in AttendanceStatus}
        for username in usernames:
            record = existing.get(username)
            status = record.status if record else AttendanceStatus.NOT_MARKED
            counts[status.value] += 1
        return counts

    def monthly_summary(self, year_month: str, usernames: Sequence[str]) -> list[dict]:
        first, last = month_bounds(year_month)
        summaries = {
            username: {"username": username, "present": 0, "absent": 0, "on_leave": 0}
            for username in usernames
        }
        for day in iter_days(first, last):
            for username, record in self._attendance.get_day(day).items():
                row = summaries.get(username)
                if row is not None and record.status.value in row:
                    row[record.status.value] += 1
        return list(summaries.values())

    def count_status(self, username: str, first: date, last: date, status: AttendanceStatus) -> int:
        return sum(1 for record in self.range(username, first, last) if record.status == status)
