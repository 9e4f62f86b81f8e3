from __future__ import annotations

from enum import Enum


class AttendanceStatus(str, Enum):
    """Per-day attendance state as stored under ``attendance/{date}/{username}``."""

    PRESENT = "present"
    ABSENT = "absent"
    ON_LEAVE = "on_leave"
    NOT_MARKED = "not_marked"


class LeaveStatus(str, Enum):
    """Leave request decision state."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    def can_transition_to(self, target: "LeaveStatus") -> bool:
        # Decisions may be re-applied or flipped (reconsideration), never reset to pending.
        return target != LeaveStatus.PENDING

    @property
    def is_decided(self) -> bool:
        return self != LeaveStatus.PENDING


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    DISPUTED = "disputed"


class AuditAction(str, Enum):
    ATTENDANCE_MARKED = "attendance.marked"
    LEAVE_SUBMITTED = "leave.submitted"
    LEAVE_APPROVED = "leave.approved"
    LEAVE_REJECTED = "leave.rejected"
    LEAVE_RECONSIDER_APPROVED = "leave.reconsider_approved"
    LEAVE_RECONSIDER_REJECTED = "leave.reconsider_rejected"
    RECONCILIATION_APPLIED = "reconciliation.applied"
    RECONCILIATION_FAILED = "reconciliation.failed"
    PAYROLL_SAVED = "payroll.saved"
    PAYROLL_STATUS_CHANGED = "payroll.status_changed"
    PAYROLL_MARKED_PAID = "payroll.marked_paid"
