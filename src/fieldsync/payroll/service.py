from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Callable, Iterable, Mapping, Optional, Sequence, Union

from ..attendance.service import AttendanceLedger
from ..common.datetime_utils import clip_span, month_bounds, now_local, parse_year_month
from ..common.validators import quantize_money, require_non_empty, require_non_negative
from ..core.enums import AttendanceStatus, AuditAction, PaymentStatus
from ..core.exceptions import NotFoundError, ValidationError
from ..core.logging import get_logger
from ..leaves.service import LeaveRegistry
from .calculator.base import StatutoryCalculator
from .calculator.standard_calculator import StandardStatutoryCalculator
from .model import ZERO, Compliance, PayrollInput, PayrollRecord
from .repository import PayrollRepository

if TYPE_CHECKING:
    from ..audit.service import AuditTrail

logger = get_logger(__name__)

PayrollFigures = Union[PayrollInput, PayrollRecord]


def _year_month(value: str) -> str:
    year, month = parse_year_month(value)
    return f"{year:04d}-{month:02d}"


class PayrollAggregator:
    """Monthly payroll lines from attendance, leave and manual salary inputs.

    ``attendance_days`` and ``leave_days`` are snapshots taken at save time;
    later attendance or leave changes do not touch a saved record until it
    is saved again.
    """

    def __init__(
        self,
        payroll: PayrollRepository,
        ledger: AttendanceLedger,
        leaves: LeaveRegistry,
        *,
        calculator: Optional[StatutoryCalculator] = None,
        audit: Optional["AuditTrail"] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._payroll = payroll
        self._ledger = ledger
        self._leaves = leaves
        self._calculator = calculator or StandardStatutoryCalculator()
        self._audit = audit
        self._clock = clock

    def compute_working_days(self, username: str, year_month: str) -> int:
        first, last = month_bounds(year_month)
        return self._ledger.count_status(username, first, last, AttendanceStatus.PRESENT)

    def compute_leave_days(self, username: str, year_month: str) -> int:
        first, last = month_bounds(year_month)
        return sum(
            clip_span(r.start_date, r.end_date, first, last)
            for r in self._leaves.approved_overlapping(username, first, last)
        )

    def compute_statutory(self, base_salary: Any) -> Compliance:
        return self._calculator.compute(quantize_money(require_non_negative(base_salary, "base_salary")))

    def compute_net_salary(self, record: PayrollFigures) -> Decimal:
        base = quantize_money(require_non_negative(record.base_salary, "base_salary"))
        require_non_negative(record.overtime_hours, "overtime_hours")
        overtime_pay = quantize_money(require_non_negative(record.overtime_pay, "overtime_pay"))

        compliance = self._calculator.compute(base)
        net = quantize_money(
            base
            + overtime_pay
            + record.total_allowances
            - record.total_deductions
            - compliance.pf
            - compliance.esi
        )
        if net < 0:
            raise ValidationError(f"Net salary would be negative ({net})")
        return net

    def save(
        self,
        username: str,
        year_month: str,
        record: Union[PayrollInput, Mapping[str, Any]],
        *,
        actor: str = "admin",
        expected_version: Optional[int] = None,
    ) -> PayrollRecord:
        """Validate, compute and persist the payroll line for one user and month.

        Money inputs are rounded to cents before anything is derived from them.
        Without an explicit payment status a re-save keeps the stored one.
        """
        username = require_non_empty(username, "username")
        year_month = _year_month(year_month)
        figures = record if isinstance(record, PayrollInput) else PayrollInput.from_payload(record)

        base_salary = quantize_money(figures.base_salary)
        net = self.compute_net_salary(figures)
        compliance = replace(self._calculator.compute(base_salary), tds=quantize_money(figures.tds))

        previous = self._payroll.get(username, year_month)
        status = figures.payment_status or (previous.payment_status if previous else PaymentStatus.PENDING)
        saved = PayrollRecord(
            username=username,
            year_month=year_month,
            base_salary=base_salary,
            overtime_hours=figures.overtime_hours,
            overtime_pay=quantize_money(figures.overtime_pay),
            allowances=tuple(figures.allowances),
            deductions=tuple(figures.deductions),
            compliance=compliance,
            attendance_days=self.compute_working_days(username, year_month),
            leave_days=self.compute_leave_days(username, year_month),
            net_salary=net,
            payment_status=status,
            calculated_at=self._clock(),
            version=(previous.version + 1) if previous else 1,
        )
        self._payroll.put(saved, expected_version=expected_version)

        logger.info(
            "payroll_saved",
            username=username,
            year_month=year_month,
            net_salary=str(net),
            attendance_days=saved.attendance_days,
            leave_days=saved.leave_days,
            actor=actor,
        )
        if self._audit:
            self._audit.record(
                actor=actor,
                action=AuditAction.PAYROLL_SAVED,
                subject=f"salaries/{username}/{year_month}",
                before=previous.to_dict() if previous else None,
                after=saved.to_dict(),
            )
        return saved

    def get(self, username: str, year_month: str) -> PayrollRecord:
        year_month = _year_month(year_month)
        record = self._payroll.get(require_non_empty(username, "username"), year_month)
        if not record:
            raise NotFoundError(f"No payroll record for {username} in {year_month}")
        return record

    def set_payment_status(self, username: str, year_month: str, status: Any, *, actor: str = "admin") -> PayrollRecord:
        try:
            target = PaymentStatus(status.value if isinstance(status, PaymentStatus) else str(status))
        except ValueError:
            raise ValidationError(f"Invalid payment status {status!r}")
        current = self.get(username, year_month)
        updated = current.with_payment_status(target, at=self._clock())
        self._payroll.put(updated)

        logger.info("payroll_status_changed", username=current.username, year_month=current.year_month, status=target.value)
        if self._audit:
            self._audit.record(
                actor=actor,
                action=AuditAction.PAYROLL_STATUS_CHANGED,
                subject=f"salaries/{current.username}/{current.year_month}",
                before={"paymentStatus": current.payment_status.value},
                after={"paymentStatus": target.value},
            )
        return updated

    def bulk_mark_paid(self, usernames: Iterable[str], year_month: str, *, actor: str = "admin") -> list[str]:
        """Mark existing records paid; users without a record are skipped silently.

        Returns the usernames that were updated.
        """
        year_month = _year_month(year_month)
        now = self._clock()
        updated: list[str] = []
        skipped: list[str] = []
        for username in usernames:
            current = self._payroll.get(username, year_month)
            if not current:
                skipped.append(username)
                continue
            self._payroll.put(current.with_payment_status(PaymentStatus.PAID, at=now))
            updated.append(username)

        if skipped:
            logger.info("payroll_bulk_paid_skipped", year_month=year_month, skipped=skipped)
        logger.info("payroll_bulk_paid", year_month=year_month, updated=len(updated), actor=actor)
        if self._audit and updated:
            self._audit.record(
                actor=actor,
                action=AuditAction.PAYROLL_MARKED_PAID,
                subject=f"salaries/*/{year_month}",
                after={"updated": updated, "skipped": skipped},
            )
        return updated

    def history(self, username: str, *, order: str = "desc") -> dict[str, Any]:
        """All saved months for a user with running totals."""
        if order not in {"asc", "desc"}:
            raise ValidationError("order must be 'asc' or 'desc'")
        records = sorted(
            self._payroll.list_for_user(require_non_empty(username, "username")),
            key=lambda r: r.year_month,
            reverse=order == "desc",
        )
        totals = {
            "netSalary": sum((r.net_salary for r in records), ZERO),
            "pf": sum((r.compliance.pf for r in records), ZERO),
            "esi": sum((r.compliance.esi for r in records), ZERO),
            "attendanceDays": sum(r.attendance_days for r in records),
        }
        return {"records": records, "totals": totals}

    def month_overview(self, year_month: str, usernames: Sequence[str]) -> dict[str, Any]:
        year_month = _year_month(year_month)
        counts = {status.value: 0 for status in PaymentStatus}
        total = ZERO
        missing: list[str] = []
        for username in usernames:
            record = self._payroll.get(username, year_month)
            if not record:
                missing.append(username)
                continue
            counts[record.payment_status.value] += 1
            total += record.net_salary
        return {"yearMonth": year_month, "totalPayroll": total, "counts": counts, "missing": missing}
