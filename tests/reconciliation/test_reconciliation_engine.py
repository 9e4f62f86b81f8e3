from datetime import date, datetime

import pytest

from fieldsync.attendance.repository import StoreAttendanceRepository
from fieldsync.attendance.service import AttendanceLedger
from fieldsync.audit.repository import StoreAuditRepository
from fieldsync.audit.service import AuditTrail
from fieldsync.core.enums import AttendanceStatus
from fieldsync.core.exceptions import StoreUnavailableError, ValidationError
from fieldsync.reconciliation.engine import ReconciliationEngine
from fieldsync.store.memory_record_store import InMemoryRecordStore


class FlakyStore(InMemoryRecordStore):
    """Fails writes to the listed paths until ``heal()`` is called."""

    def __init__(self, failing_paths):
        super().__init__()
        self.failing_paths = set(failing_paths)

    def heal(self):
        self.failing_paths.clear()

    def write(self, path, value):
        if path in self.failing_paths:
            raise StoreUnavailableError(f"timeout writing {path}", path=path)
        super().write(path, value)


def clock():
    return datetime(2024, 3, 9, 18, 0, 0)


def make_engine(store=None, audit_store=None):
    store = store or InMemoryRecordStore()
    audit = AuditTrail(StoreAuditRepository(audit_store or store), clock=clock)
    ledger = AttendanceLedger(StoreAttendanceRepository(store), clock=clock)
    return ReconciliationEngine(ledger, audit=audit), ledger, audit


def statuses(ledger, username, start, end):
    return [r.status for r in ledger.range(username, start, end)]


def test_approval_fills_gaps_and_is_idempotent():
    engine, ledger, _ = make_engine()

    first = engine.apply_approval("alice", "2024-03-10", "2024-03-12")
    stamped = ledger.get("alice", "2024-03-11")
    second = engine.apply_approval("alice", "2024-03-10", "2024-03-12")

    assert statuses(ledger, "alice", "2024-03-10", "2024-03-12") == [AttendanceStatus.ON_LEAVE] * 3
    assert len(first.changed) == 3
    assert second.changed == ()
    assert len(second.skipped) == 3
    assert ledger.get("alice", "2024-03-11") == stamped


def test_approval_never_clobbers_explicit_marks():
    engine, ledger, _ = make_engine()
    ledger.mark("alice", "2024-03-11", "present")
    ledger.mark("alice", "2024-03-12", "absent")

    result = engine.apply_approval("alice", "2024-03-10", "2024-03-12")

    assert statuses(ledger, "alice", "2024-03-10", "2024-03-12") == [
        AttendanceStatus.ON_LEAVE,
        AttendanceStatus.PRESENT,
        AttendanceStatus.ABSENT,
    ]
    assert result.changed == (date(2024, 3, 10),)


def test_rejection_reverts_only_on_leave_days():
    engine, ledger, _ = make_engine()
    ledger.mark("alice", "2024-03-10", "on_leave")
    ledger.mark("alice", "2024-03-11", "present")
    ledger.mark("alice", "2024-03-12", "absent")

    result = engine.apply_rejection("alice", "2024-03-10", "2024-03-13")

    assert statuses(ledger, "alice", "2024-03-10", "2024-03-13") == [
        AttendanceStatus.NOT_MARKED,
        AttendanceStatus.PRESENT,
        AttendanceStatus.ABSENT,
        AttendanceStatus.NOT_MARKED,
    ]
    assert ledger.get("alice", "2024-03-10").is_stored
    assert not ledger.get("alice", "2024-03-13").is_stored
    assert result.changed == (date(2024, 3, 10),)


def test_reconsider_reject_deletes_every_record_in_span():
    engine, ledger, _ = make_engine()
    ledger.mark("alice", "2024-03-10", "on_leave")
    ledger.mark("alice", "2024-03-11", "present")
    ledger.mark("alice", "2024-03-13", "present")

    engine.apply_reconsider_reject("alice", "2024-03-10", "2024-03-12")

    assert not ledger.get("alice", "2024-03-10").is_stored
    assert not ledger.get("alice", "2024-03-11").is_stored
    assert ledger.get("alice", "2024-03-13").status == AttendanceStatus.PRESENT


def test_reconsider_approve_uses_fill_gap():
    engine, ledger, _ = make_engine()
    ledger.mark("alice", "2024-03-11", "present")

    engine.apply_reconsider_approve("alice", "2024-03-10", "2024-03-11")

    assert statuses(ledger, "alice", "2024-03-10", "2024-03-11") == [
        AttendanceStatus.ON_LEAVE,
        AttendanceStatus.PRESENT,
    ]


def test_empty_span_is_rejected_before_any_write():
    engine, ledger, _ = make_engine()
    with pytest.raises(ValidationError):
        engine.apply_approval("alice", "2024-03-12", "2024-03-10")
    assert not ledger.get("alice", "2024-03-12").is_stored


def test_partial_failure_reports_applied_days_and_retry_converges():
    store = FlakyStore({"attendance/2024-03-11/alice"})
    engine, ledger, audit = make_engine(store=store, audit_store=InMemoryRecordStore())

    with pytest.raises(StoreUnavailableError) as exc_info:
        engine.apply_approval("alice", "2024-03-10", "2024-03-12")

    err = exc_info.value
    assert err.username == "alice"
    assert err.failed_date == date(2024, 3, 11)
    assert err.applied_dates == (date(2024, 3, 10),)
    assert "alice" in str(err) and "2024-03-11" in str(err)
    assert statuses(ledger, "alice", "2024-03-10", "2024-03-12") == [
        AttendanceStatus.ON_LEAVE,
        AttendanceStatus.NOT_MARKED,
        AttendanceStatus.NOT_MARKED,
    ]
    assert [e.action for e in audit.list()] == ["reconciliation.failed"]

    store.heal()
    result = engine.apply_approval("alice", "2024-03-10", "2024-03-12")

    assert statuses(ledger, "alice", "2024-03-10", "2024-03-12") == [AttendanceStatus.ON_LEAVE] * 3
    assert result.changed == (date(2024, 3, 11), date(2024, 3, 12))
    assert result.skipped == (date(2024, 3, 10),)


def test_successful_span_is_audited():
    engine, _, audit = make_engine()

    engine.apply_approval("alice", "2024-03-10", "2024-03-10", actor="admin")

    entries = audit.list(subject_prefix="attendance")
    assert len(entries) == 1
    assert entries[0].action == "reconciliation.applied"
    assert entries[0].actor == "admin"
    assert entries[0].after["changed"] == ["2024-03-10"]


def test_reconsider_reject_reports_only_days_that_held_a_record():
    engine, ledger, audit = make_engine()
    ledger.mark("alice", "2024-03-11", "on_leave")

    result = engine.apply_reconsider_reject("alice", "2024-03-10", "2024-03-12")

    assert result.changed == (date(2024, 3, 11),)
    assert result.skipped == (date(2024, 3, 10), date(2024, 3, 12))
    assert audit.list()[0].after["changed"] == ["2024-03-11"]
