from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Callable, Iterable, Optional
from uuid import uuid4

from ..common.datetime_utils import DateLike, as_calendar_date, clip_span, format_date, month_bounds, now_local
from ..common.validators import require_non_empty
from ..core.enums import AuditAction, LeaveStatus
from ..core.exceptions import NotFoundError, StoreUnavailableError, ValidationError
from ..core.logging import get_logger
from ..reconciliation.engine import ReconciliationEngine, ReconciliationResult
from .model import LeaveRequest
from .repository import LeaveRepository

if TYPE_CHECKING:
    from ..audit.service import AuditTrail

logger = get_logger(__name__)


@dataclass(frozen=True)
class LeaveDecision:
    request: LeaveRequest
    reconciliation: ReconciliationResult

    def to_dict(self) -> dict:
        return {"request": self.request.to_view(), "reconciliation": self.reconciliation.to_dict()}


class LeaveRegistry:
    """Leave request lifecycle.

    ``pending -> approved | rejected``; decided requests may be reconsidered
    (``approved <-> rejected``) but never return to pending. Each decision
    commits the status first and then reconciles attendance for the span;
    the two writes are not atomic.
    """

    def __init__(
        self,
        leaves: LeaveRepository,
        engine: ReconciliationEngine,
        *,
        audit: Optional["AuditTrail"] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._leaves = leaves
        self._engine = engine
        self._audit = audit
        self._clock = clock

    def submit(self, username: str, start_date: DateLike, end_date: DateLike, reason: str) -> LeaveRequest:
        username = require_non_empty(username, "username")
        start = as_calendar_date(start_date, "start_date")
        end = as_calendar_date(end_date, "end_date")
        if end < start:
            raise ValidationError("end_date must be on or after start_date")
        reason = require_non_empty(reason, "reason")

        request = LeaveRequest(
            username=username,
            request_id=uuid4().hex,
            start_date=start,
            end_date=end,
            reason=reason,
            status=LeaveStatus.PENDING,
            timestamp=self._clock(),
        )
        self._leaves.put(request)

        logger.info("leave_submitted", username=username, request_id=request.request_id, days=request.days)
        if self._audit:
            self._audit.record(
                actor=username,
                action=AuditAction.LEAVE_SUBMITTED,
                subject=f"leaveRequests/{username}/{request.request_id}",
                after=request.to_dict(),
            )
        return request

    def get(self, username: str, request_id: str) -> LeaveRequest:
        request = self._leaves.get(require_non_empty(username, "username"), require_non_empty(request_id, "request_id"))
        if not request:
            raise NotFoundError(f"Leave request {request_id} of {username} does not exist")
        return request

    def approve(self, username: str, request_id: str, *, actor: str = "admin", expected_version: Optional[int] = None) -> LeaveDecision:
        return self._decide(
            username, request_id, LeaveStatus.APPROVED, AuditAction.LEAVE_APPROVED,
            self._engine.apply_approval, actor, expected_version,
        )

    def reject(self, username: str, request_id: str, *, actor: str = "admin", expected_version: Optional[int] = None) -> LeaveDecision:
        return self._decide(
            username, request_id, LeaveStatus.REJECTED, AuditAction.LEAVE_REJECTED,
            self._engine.apply_rejection, actor, expected_version,
        )

    def reconsider_approve(
        self, username: str, request_id: str, *, actor: str = "admin", expected_version: Optional[int] = None
    ) -> LeaveDecision:
        self._require_decided(username, request_id)
        return self._decide(
            username, request_id, LeaveStatus.APPROVED, AuditAction.LEAVE_RECONSIDER_APPROVED,
            self._engine.apply_reconsider_approve, actor, expected_version,
        )

    def reconsider_reject(
        self, username: str, request_id: str, *, actor: str = "admin", expected_version: Optional[int] = None
    ) -> LeaveDecision:
        self._require_decided(username, request_id)
        return self._decide(
            username, request_id, LeaveStatus.REJECTED, AuditAction.LEAVE_RECONSIDER_REJECTED,
            self._engine.apply_reconsider_reject, actor, expected_version,
        )

    def _require_decided(self, username: str, request_id: str) -> None:
        if not self.get(username, request_id).status.is_decided:
            raise ValidationError(f"Leave request {request_id} is still pending; approve or reject it first")

    def _decide(
        self,
        username: str,
        request_id: str,
        target: LeaveStatus,
        action: AuditAction,
        reconcile: Callable[..., ReconciliationResult],
        actor: str,
        expected_version: Optional[int],
    ) -> LeaveDecision:
        actor = require_non_empty(actor, "actor")
        current = self.get(username, request_id)
        if not current.status.can_transition_to(target):
            raise ValidationError(f"Leave request {request_id} cannot move from {current.status.value} to {target.value}")

        updated = current.decided(target, by=actor, at=self._clock())
        self._leaves.put(updated, expected_version=expected_version)
        logger.info(
            "leave_decided",
            username=current.username,
            request_id=request_id,
            previous=current.status.value,
            status=target.value,
            actor=actor,
        )
        if self._audit:
            self._audit.record(
                actor=actor,
                action=action,
                subject=f"leaveRequests/{current.username}/{request_id}",
                before=current.to_dict(),
                after=updated.to_dict(),
            )

        try:
            result = reconcile(current.username, current.start_date, current.end_date, actor=actor)
        except StoreUnavailableError:
            logger.error(
                "leave_reconciliation_incomplete",
                username=current.username,
                request_id=request_id,
                status=target.value,
            )
            raise
        return LeaveDecision(request=updated, reconciliation=result)

    def list_for_user(self, username: str, *, status: Optional[LeaveStatus] = None) -> list[LeaveRequest]:
        rows = self._leaves.list_for_user(require_non_empty(username, "username"))
        return [r for r in rows if status is None or r.status == status]

    def list_pending(self) -> list[LeaveRequest]:
        rows = [r for r in self._leaves.iter_all() if r.status == LeaveStatus.PENDING]
        rows.sort(key=lambda r: r.timestamp)
        return rows

    def approved_overlapping(self, username: str, first: date, last: date) -> list[LeaveRequest]:
        return [
            r
            for r in self.list_for_user(username, status=LeaveStatus.APPROVED)
            if r.start_date <= last and r.end_date >= first
        ]

    def covering_approved(self, username: str, day: DateLike) -> bool:
        d = as_calendar_date(day)
        return any(r.covers(d) for r in self.list_for_user(username, status=LeaveStatus.APPROVED))

    def sync_approved_leave(self, work_date: DateLike, usernames: Iterable[str], *, actor: str = "system") -> list[str]:
        """Fill on_leave for users whose approved leave covers the day.

        Returns the usernames whose attendance changed.
        """
        day = as_calendar_date(work_date)
        synced: list[str] = []
        for username in usernames:
            if not self.covering_approved(username, day):
                continue
            result = self._engine.apply_approval(username, day, day, actor=actor)
            if result.changed:
                synced.append(username)
        logger.info("leave_sync", date=format_date(day), synced=len(synced))
        return synced

    def month_leave_summary(self, year_month: str) -> dict[str, Any]:
        """Leave report for one month across all users.

        ``leaveDays``: approved days falling inside the month, per user with
        at least one. ``decided``: approved or rejected requests overlapping
        the month. Both are ordered by username.
        """
        first, last = month_bounds(year_month)
        days: dict[str, int] = {}
        decided: list[LeaveRequest] = []
        for r in self._leaves.iter_all():
            if not r.status.is_decided or r.start_date > last or r.end_date < first:
                continue
            decided.append(r)
            if r.status == LeaveStatus.APPROVED:
                days[r.username] = days.get(r.username, 0) + clip_span(r.start_date, r.end_date, first, last)
        decided.sort(key=lambda r: (r.username, r.start_date))
        return {
            "yearMonth": format_date(first)[:7],
            "leaveDays": [{"username": u, "approvedDays": days[u]} for u in sorted(days)],
            "decided": decided,
        }
