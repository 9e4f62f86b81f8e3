from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Any, Mapping, Optional

from ..common.datetime_utils import format_timestamp, parse_timestamp
from ..common.validators import quantize_money, require_decimal, require_non_empty, require_non_negative
from ..core.enums import PaymentStatus
from ..core.exceptions import ValidationError

ZERO = Decimal("0")


def _money_out(value: Decimal) -> float:
    # The shared store holds plain JSON numbers; the dashboard formats them directly.
    return float(value)


@dataclass(frozen=True)
class Allowance:
    name: str
    amount: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "amount": _money_out(self.amount)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Allowance":
        if not isinstance(data, Mapping):
            raise ValidationError("Each allowance must be an object with name and amount")
        return cls(
            name=require_non_empty(data.get("name"), "allowance name"),
            amount=quantize_money(require_non_negative(data.get("amount"), "allowance amount")),
        )


@dataclass(frozen=True)
class Deduction:
    name: str
    amount: Decimal
    is_statutory: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "amount": _money_out(self.amount), "isStatutory": self.is_statutory}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Deduction":
        if not isinstance(data, Mapping):
            raise ValidationError("Each deduction must be an object with name and amount")
        return cls(
            name=require_non_empty(data.get("name"), "deduction name"),
            amount=quantize_money(require_non_negative(data.get("amount"), "deduction amount")),
            is_statutory=bool(data.get("isStatutory", data.get("is_statutory", False))),
        )


@dataclass(frozen=True)
class Compliance:
    pf: Decimal = ZERO
    esi: Decimal = ZERO
    tds: Decimal = ZERO

    def to_dict(self) -> dict[str, Any]:
        return {"pf": _money_out(self.pf), "esi": _money_out(self.esi), "tds": _money_out(self.tds)}

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "Compliance":
        data = data or {}
        return cls(
            pf=quantize_money(require_decimal(data.get("pf", 0), "pf")),
            esi=quantize_money(require_decimal(data.get("esi", 0), "esi")),
            tds=quantize_money(require_decimal(data.get("tds", 0), "tds")),
        )


@dataclass(frozen=True)
class PayrollInput:
    """Manually entered figures for one user and month."""

    base_salary: Decimal
    overtime_hours: Decimal = ZERO
    overtime_pay: Decimal = ZERO
    allowances: tuple[Allowance, ...] = ()
    deductions: tuple[Deduction, ...] = ()
    tds: Decimal = ZERO
    # None keeps the stored status on re-save.
    payment_status: Optional[PaymentStatus] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "PayrollInput":
        """Build from an admin form / JSON body (camelCase or snake_case keys)."""

        def pick(camel: str, snake: str, default: Any = None) -> Any:
            if camel in payload:
                return payload[camel]
            return payload.get(snake, default)

        status_value = pick("paymentStatus", "payment_status")
        status = None
        if status_value is not None:
            try:
                status = PaymentStatus(status_value)
            except ValueError:
                raise ValidationError(f"Invalid payment status {status_value!r}")

        compliance = payload.get("compliance") or {}
        allowances = payload.get("allowances") or []
        deductions = payload.get("deductions") or []
        if not isinstance(allowances, (list, tuple)) or not isinstance(deductions, (list, tuple)):
            raise ValidationError("allowances and deductions must be lists")

        return cls(
            base_salary=quantize_money(require_non_negative(pick("baseSalary", "base_salary"), "base_salary")),
            overtime_hours=require_non_negative(pick("overtimeHours", "overtime_hours", 0), "overtime_hours"),
            overtime_pay=quantize_money(require_non_negative(pick("overtimePay", "overtime_pay", 0), "overtime_pay")),
            allowances=tuple(Allowance.from_dict(a) for a in allowances),
            deductions=tuple(Deduction.from_dict(d) for d in deductions),
            tds=quantize_money(require_non_negative(payload.get("tds", compliance.get("tds", 0)), "tds")),
            payment_status=status,
        )

    @property
    def total_allowances(self) -> Decimal:
        return sum((a.amount for a in self.allowances), ZERO)

    @property
    def total_deductions(self) -> Decimal:
        return sum((d.amount for d in self.deductions), ZERO)


@dataclass(frozen=True)
class PayrollRecord:
    username: str
    year_month: str
    base_salary: Decimal
    overtime_hours: Decimal
    overtime_pay: Decimal
    allowances: tuple[Allowance, ...]
    deductions: tuple[Deduction, ...]
    compliance: Compliance
    attendance_days: int
    leave_days: int
    net_salary: Decimal
    payment_status: PaymentStatus
    calculated_at: Optional[datetime]
    version: int = 1

    @property
    def total_allowances(self) -> Decimal:
        return sum((a.amount for a in self.allowances), ZERO)

    @property
    def total_deductions(self) -> Decimal:
        return sum((d.amount for d in self.deductions), ZERO)

    def with_payment_status(self, status: PaymentStatus, *, at: datetime) -> "PayrollRecord":
        return replace(self, payment_status=status, calculated_at=at, version=self.version + 1)

    def to_dict(self) -> dict[str, Any]:
        return {
            "yearMonth": self.year_month,
            "baseSalary": _money_out(self.base_salary),
            "overtimeHours": float(self.overtime_hours),
            "overtimePay": _money_out(self.overtime_pay),
            "allowances": [a.to_dict() for a in self.allowances],
            "deductions": [d.to_dict() for d in self.deductions],
            "compliance": self.compliance.to_dict(),
            "attendanceDays": self.attendance_days,
            "leaveDays": self.leave_days,
            "netSalary": _money_out(self.net_salary),
            "paymentStatus": self.payment_status.value,
            "calculatedAt": format_timestamp(self.calculated_at),
            "version": self.version,
        }

    def to_view(self) -> dict[str, Any]:
        return {"username": self.username, **self.to_dict()}

    @classmethod
    def from_dict(cls, username: str, year_month: str, data: Mapping[str, Any]) -> "PayrollRecord":
        return cls(
            username=username,
            year_month=year_month,
            base_salary=quantize_money(require_decimal(data.get("baseSalary", 0), "baseSalary")),
            overtime_hours=require_decimal(data.get("overtimeHours", 0), "overtimeHours"),
            overtime_pay=quantize_money(require_decimal(data.get("overtimePay", 0), "overtimePay")),
            allowances=tuple(Allowance.from_dict(a) for a in data.get("allowances") or []),
            deductions=tuple(Deduction.from_dict(d) for d in data.get("deductions") or []),
            compliance=Compliance.from_dict(data.get("compliance")),
            attendance_days=int(data.get("attendanceDays") or 0),
            leave_days=int(data.get("leaveDays") or 0),
            net_salary=quantize_money(require_decimal(data.get("netSalary", 0), "netSalary")),
            payment_status=PaymentStatus(data.get("paymentStatus") or PaymentStatus.PENDING.value),
            calculated_at=parse_timestamp(data.get("calculatedAt")),
            version=int(data.get("version") or 1),
        )
