from datetime import datetime
from decimal import Decimal

import pytest

from fieldsync.attendance.repository import StoreAttendanceRepository
from fieldsync.attendance.service import AttendanceLedger
from fieldsync.audit.repository import StoreAuditRepository
from fieldsync.audit.service import AuditTrail
from fieldsync.core.enums import PaymentStatus
from fieldsync.core.exceptions import ConcurrentModificationError, NotFoundError, ValidationError
from fieldsync.leaves.repository import StoreLeaveRepository
from fieldsync.leaves.service import LeaveRegistry
from fieldsync.payroll.model import PayrollInput
from fieldsync.payroll.repository import StorePayrollRepository
from fieldsync.payroll.service import PayrollAggregator
from fieldsync.reconciliation.engine import ReconciliationEngine
from fieldsync.store.memory_record_store import InMemoryRecordStore


def clock():
    return datetime(2024, 4, 30, 17, 0, 0)


def make_aggregator():
    store = InMemoryRecordStore()
    audit = AuditTrail(StoreAuditRepository(store), clock=clock)
    ledger = AttendanceLedger(StoreAttendanceRepository(store), clock=clock)
    registry = LeaveRegistry(StoreLeaveRepository(store), ReconciliationEngine(ledger), clock=clock)
    aggregator = PayrollAggregator(StorePayrollRepository(store), ledger, registry, audit=audit, clock=clock)
    return aggregator, ledger, registry, store, audit


SCENARIO_B = {
    "baseSalary": 20000,
    "overtimePay": 500,
    "allowances": [{"name": "travel", "amount": 1000}],
    "deductions": [],
}


def test_scenario_net_salary():
    aggregator, _, _, store, _ = make_aggregator()

    record = aggregator.save("alice", "2024-04", SCENARIO_B)

    assert record.compliance.pf == Decimal("2400.00")
    assert record.compliance.esi == Decimal("650.00")
    assert record.net_salary == Decimal("18450.00")
    assert store.read("salaries/alice/2024-04")["netSalary"] == 18450.0
    assert store.read("salaries/alice/2024-04")["paymentStatus"] == "pending"


def test_net_salary_invariant_holds_for_mixed_inputs():
    aggregator, _, _, _, _ = make_aggregator()
    figures = PayrollInput.from_payload(
        {
            "base_salary": "30000.50",
            "overtime_hours": 4,
            "overtime_pay": "1200.25",
            "allowances": [{"name": "food", "amount": 800}, {"name": "phone", "amount": "199.99"}],
            "deductions": [{"name": "advance", "amount": 2500}],
        }
    )

    net = aggregator.compute_net_salary(figures)
    compliance = aggregator.compute_statutory(figures.base_salary)

    expected = (
        Decimal("30000.50") + Decimal("1200.25") + Decimal("999.99") - Decimal("2500")
        - compliance.pf - compliance.esi
    )
    assert compliance.esi == Decimal("0")
    assert net == expected.quantize(Decimal("0.01"))


def test_negative_net_salary_is_rejected_without_writing():
    aggregator, _, _, store, _ = make_aggregator()

    with pytest.raises(ValidationError):
        aggregator.save("alice", "2024-04", {"baseSalary": 1000, "deductions": [{"name": "loan", "amount": 5000}]})

    assert store.read("salaries") is None


@pytest.mark.parametrize(
    "payload",
    [
        {"baseSalary": -1},
        {"baseSalary": "abc"},
        {},
        {"baseSalary": 1000, "overtimeHours": -2},
        {"baseSalary": 1000, "overtimePay": -5},
        {"baseSalary": 1000, "allowances": [{"name": "x", "amount": -1}]},
        {"baseSalary": 1000, "allowances": [{"name": "", "amount": 1}]},
        {"baseSalary": 1000, "deductions": "lots"},
        {"baseSalary": 1000, "paymentStatus": "settled"},
    ],
)
def test_invalid_inputs_are_rejected(payload):
    aggregator, _, _, store, _ = make_aggregator()
    with pytest.raises(ValidationError):
        aggregator.save("alice", "2024-04", payload)
    assert store.read("salaries") is None


def test_invalid_year_month_is_rejected():
    aggregator, _, _, _, _ = make_aggregator()
    with pytest.raises(ValidationError):
        aggregator.save("alice", "2024-4x", SCENARIO_B)


def test_leave_days_are_clipped_to_the_month():
    aggregator, _, registry, _, _ = make_aggregator()
    request = registry.submit("u1", "2024-01-28", "2024-02-03", "family")
    registry.approve("u1", request.request_id)
    registry.submit("u1", "2024-01-05", "2024-01-06", "still pending")

    assert aggregator.compute_leave_days("u1", "2024-01") == 4
    assert aggregator.compute_leave_days("u1", "2024-02") == 3
    assert aggregator.compute_leave_days("u1", "2024-03") == 0


def test_working_days_count_present_only():
    aggregator, ledger, _, _, _ = make_aggregator()
    ledger.mark("alice", "2024-04-01", "present")
    ledger.mark("alice", "2024-04-02", "present")
    ledger.mark("alice", "2024-04-03", "absent")
    ledger.mark("alice", "2024-05-01", "present")

    assert aggregator.compute_working_days("alice", "2024-04") == 2


def test_saved_day_counts_are_snapshots():
    aggregator, ledger, _, _, _ = make_aggregator()
    ledger.mark("alice", "2024-04-01", "present")
    aggregator.save("alice", "2024-04", SCENARIO_B)

    ledger.mark("alice", "2024-04-02", "present")

    assert aggregator.get("alice", "2024-04").attendance_days == 1
    assert aggregator.compute_working_days("alice", "2024-04") == 2
    assert aggregator.save("alice", "2024-04", SCENARIO_B).attendance_days == 2


def test_resave_bumps_version_and_detects_stale_writes():
    aggregator, _, _, _, audit = make_aggregator()
    first = aggregator.save("alice", "2024-04", SCENARIO_B)
    second = aggregator.save("alice", "2024-04", SCENARIO_B, expected_version=first.version)

    assert second.version == 2
    with pytest.raises(ConcurrentModificationError):
        aggregator.save("alice", "2024-04", SCENARIO_B, expected_version=first.version)

    saved = audit.list(subject_prefix="salaries/alice/2024-04")
    assert len(saved) == 2
    assert sorted(e.before is None for e in saved) == [False, True]


def test_bulk_mark_paid_skips_missing_records():
    aggregator, _, _, _, _ = make_aggregator()
    aggregator.save("alice", "2024-04", SCENARIO_B)

    updated = aggregator.bulk_mark_paid(["alice", "bob"], "2024-04")

    assert updated == ["alice"]
    assert aggregator.get("alice", "2024-04").payment_status == PaymentStatus.PAID
    with pytest.raises(NotFoundError):
        aggregator.get("bob", "2024-04")


def test_set_payment_status():
    aggregator, _, _, _, _ = make_aggregator()
    aggregator.save("alice", "2024-04", SCENARIO_B)

    assert aggregator.set_payment_status("alice", "2024-04", "disputed").payment_status == PaymentStatus.DISPUTED
    with pytest.raises(ValidationError):
        aggregator.set_payment_status("alice", "2024-04", "lost")
    with pytest.raises(NotFoundError):
        aggregator.set_payment_status("bob", "2024-04", "paid")


def test_history_and_month_overview():
    aggregator, _, _, _, _ = make_aggregator()
    aggregator.save("alice", "2024-03", {"baseSalary": 10000})
    aggregator.save("alice", "2024-04", SCENARIO_B)
    aggregator.save("bob", "2024-04", {"baseSalary": 25000})
    aggregator.bulk_mark_paid(["bob"], "2024-04")

    history = aggregator.history("alice")
    assert [r.year_month for r in history["records"]] == ["2024-04", "2024-03"]
    assert [r.year_month for r in aggregator.history("alice", order="asc")["records"]] == ["2024-03", "2024-04"]
    assert history["totals"]["netSalary"] == Decimal("18450.00") + Decimal("8475.00")

    overview = aggregator.month_overview("2024-04", ["alice", "bob", "carol"])
    assert overview["counts"] == {"pending": 1, "paid": 1, "disputed": 0}
    assert overview["missing"] == ["carol"]
    assert overview["totalPayroll"] == Decimal("18450.00") + Decimal("22000.00")


def test_sub_cent_inputs_are_rounded_before_net_and_esi():
    aggregator, _, _, _, _ = make_aggregator()

    record = aggregator.save("alice", "2024-04", {"baseSalary": "10000.005", "overtimePay": "0.005"})

    assert record.base_salary == Decimal("10000.01")
    assert record.overtime_pay == Decimal("0.01")
    assert record.net_salary == (
        record.base_salary + record.overtime_pay - record.compliance.pf - record.compliance.esi
    )
    assert aggregator.get("alice", "2024-04").net_salary == Decimal("8475.02")


def test_base_rounding_to_the_ceiling_keeps_esi():
    aggregator, _, _, _, _ = make_aggregator()

    record = aggregator.save("alice", "2024-04", {"baseSalary": "21000.004"})

    assert record.base_salary == Decimal("21000.00")
    assert record.compliance.esi == Decimal("682.50")
    assert aggregator.compute_statutory("21000.004").esi == Decimal("682.50")


def test_resave_without_status_keeps_paid():
    aggregator, _, _, _, _ = make_aggregator()
    aggregator.save("alice", "2024-04", SCENARIO_B)
    aggregator.bulk_mark_paid(["alice"], "2024-04")

    resaved = aggregator.save("alice", "2024-04", {"baseSalary": 20000, "overtimePay": 100})

    assert resaved.payment_status == PaymentStatus.PAID
    assert aggregator.save("alice", "2024-04", {**SCENARIO_B, "paymentStatus": "disputed"}).payment_status == (
        PaymentStatus.DISPUTED
    )
