from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING, Callable, Optional

from ..attendance.service import AttendanceLedger
from ..common.datetime_utils import DateLike, as_calendar_date, format_date, iter_days
from ..common.validators import require_non_empty
from ..core.enums import AttendanceStatus, AuditAction
from ..core.exceptions import StoreUnavailableError, ValidationError
from ..core.logging import get_logger

if TYPE_CHECKING:
    from ..audit.service import AuditTrail

logger = get_logger(__name__)

# A per-day step returns True when it changed the ledger.
DayStep = Callable[[str, date], bool]


@dataclass(frozen=True)
class ReconciliationResult:
    operation: str
    username: str
    start_date: date
    end_date: date
    changed: tuple[date, ...]
    skipped: tuple[date, ...]

    def to_dict(self) -> dict:
        return {
            "operation": self.operation,
            "username": self.username,
            "startDate": format_date(self.start_date),
            "endDate": format_date(self.end_date),
            "changed": [format_date(d) for d in self.changed],
            "skipped": [format_date(d) for d in self.skipped],
        }


class ReconciliationEngine:
    """Translates a leave decision into a bounded sequence of ledger writes.

    Days are processed one at a time in calendar order: read, then (maybe)
    write, then the next day. A store failure stops the span where it
    happened; days already written stay written. Every per-day step is
    idempotent, so retrying the same span after a failure converges.
    """

    def __init__(self, ledger: AttendanceLedger, *, audit: Optional["AuditTrail"] = None):
        self._ledger = ledger
        self._audit = audit

    def apply_approval(self, username: str, start: DateLike, end: DateLike, *, actor: str = "system") -> ReconciliationResult:
        """Fill gaps with on_leave; never overwrites an explicit mark."""
        return self._apply("approval", username, start, end, self._fill_gap, actor)

    def apply_rejection(self, username: str, start: DateLike, end: DateLike, *, actor: str = "system") -> ReconciliationResult:
        """Revert on_leave days to an explicit not_marked record."""
        return self._apply("rejection", username, start, end, self._revert_leave, actor)

    def apply_reconsider_approve(
        self, username: str, start: DateLike, end: DateLike, *, actor: str = "system"
    ) -> ReconciliationResult:
        return self._apply("reconsider_approve", username, start, end, self._fill_gap, actor)

    def apply_reconsider_reject(
        self, username: str, start: DateLike, end: DateLike, *, actor: str = "system"
    ) -> ReconciliationResult:
        """Delete every attendance record in the span, whatever its status."""
        return self._apply("reconsider_reject", username, start, end, self._delete_day, actor)

    def _fill_gap(self, username: str, day: date) -> bool:
        current = self._ledger.get(username, day)
        if not current.is_gap:
            return False
        self._ledger.overwrite(current, AttendanceStatus.ON_LEAVE)
        return True

    def _revert_leave(self, username: str, day: date) -> bool:
        current = self._ledger.get(username, day)
        if current.status != AttendanceStatus.ON_LEAVE:
            return False
        self._ledger.overwrite(current, AttendanceStatus.NOT_MARKED)
        return True

    def _delete_day(self, username: str, day: date) -> bool:
        if not self._ledger.get(username, day).is_stored:
            return False
        self._ledger.clear(username, day)
        return True

    def _apply(
        self,
        operation: str,
        username: str,
        start: DateLike,
        end: DateLike,
        step: DayStep,
        actor: str,
    ) -> ReconciliationResult:
        username = require_non_empty(username, "username")
        first = as_calendar_date(start, "start_date")
        last = as_calendar_date(end, "end_date")
        if first > last:
            raise ValidationError(f"Span for {username} is empty: {format_date(first)} > {format_date(last)}")

        changed: list[date] = []
        skipped: list[date] = []
        for day in iter_days(first, last):
            try:
                did_change = step(username, day)
            except StoreUnavailableError as e:
                self._report_failure(operation, username, first, last, day, changed, actor, e)
                raise StoreUnavailableError(
                    f"{operation} for {username} stopped at {format_date(day)} "
                    f"({len(changed)} day(s) already applied): {e}",
                    path=e.path,
                    username=username,
                    failed_date=day,
                    applied_dates=changed,
                ) from e
            (changed if did_change else skipped).append(day)

        result = ReconciliationResult(
            operation=operation,
            username=username,
            start_date=first,
            end_date=last,
            changed=tuple(changed),
            skipped=tuple(skipped),
        )
        logger.info(
            "reconciliation_applied",
            operation=operation,
            username=username,
            start=format_date(first),
            end=format_date(last),
            changed=len(changed),
            skipped=len(skipped),
        )
        if self._audit:
            self._audit.record(
                actor=actor,
                action=AuditAction.RECONCILIATION_APPLIED,
                subject=f"attendance/*/{username}",
                before=None,
                after=result.to_dict(),
            )
        return result

    def _report_failure(
        self,
        operation: str,
        username: str,
        first: date,
        last: date,
        day: date,
        changed: list[date],
        actor: str,
        error: StoreUnavailableError,
    ) -> None:
        logger.error(
            "reconciliation_failed",
            operation=operation,
            username=username,
            failed_date=format_date(day),
            applied=[format_date(d) for d in changed],
            error=str(error),
        )
        if not self._audit:
            return
        try:
            self._audit.record(
                actor=actor,
                action=AuditAction.RECONCILIATION_FAILED,
                subject=f"attendance/*/{username}",
                before=None,
                after={
                    "operation": operation,
                    "startDate": format_date(first),
                    "endDate": format_date(last),
                    "failedDate": format_date(day),
                    "applied": [format_date(d) for d in changed],
                },
            )
        except StoreUnavailableError as audit_error:
            logger.error("reconciliation_failure_not_audited", username=username, error=str(audit_error))
