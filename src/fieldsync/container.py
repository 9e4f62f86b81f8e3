from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.repository import StoreAttendanceRepository
from .attendance.service import AttendanceLedger
from .audit.repository import StoreAuditRepository
from .audit.service import AuditTrail
from .database.connection import DBConfig, DatabaseConnection
from .leaves.repository import StoreLeaveRepository
from .leaves.service import LeaveRegistry
from .payroll.calculator.standard_calculator import StandardStatutoryCalculator
from .payroll.repository import StorePayrollRepository
from .payroll.service import PayrollAggregator
from .reconciliation.engine import ReconciliationEngine
from .store.memory_record_store import InMemoryRecordStore
from .store.mysql_record_store import MySQLRecordStore
from .store.record_store import RecordStore
from .users.repository import StoreUserRepository


@dataclass(frozen=True)
class Container:
    store: RecordStore
    conn: Optional[DatabaseConnection]

    attendance_repo: StoreAttendanceRepository
    leaves_repo: StoreLeaveRepository
    payroll_repo: StorePayrollRepository
    audit_repo: StoreAuditRepository
    users_repo: StoreUserRepository

    audit_trail: AuditTrail
    attendance_ledger: AttendanceLedger
    reconciliation_engine: ReconciliationEngine
    leave_registry: LeaveRegistry
    payroll_aggregator: PayrollAggregator


def build_store(*, store_backend: str, db_config: Optional[dict] = None) -> tuple[RecordStore, Optional[DatabaseConnection]]:
    backend = (store_backend or "mysql").lower()
    if backend == "memory":
        return InMemoryRecordStore(), None
    if backend != "mysql":
        raise ValueError(f"Unknown STORE_BACKEND {store_backend!r} (expected 'mysql' or 'memory')")
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config or {}))
    return MySQLRecordStore(conn), conn


def build_container(
    *,
    store_backend: str = "mysql",
    db_config: Optional[dict] = None,
    store: Optional[RecordStore] = None,
) -> Container:
    conn: Optional[DatabaseConnection] = None
    if store is None:
        store, conn = build_store(store_backend=store_backend, db_config=db_config)

    attendance_repo = StoreAttendanceRepository(store)
    leaves_repo = StoreLeaveRepository(store)
    payroll_repo = StorePayrollRepository(store)
    audit_repo = StoreAuditRepository(store)
    users_repo = StoreUserRepository(store)

    audit_trail = AuditTrail(audit_repo)
    attendance_ledger = AttendanceLedger(attendance_repo, audit=audit_trail)
    reconciliation_engine = ReconciliationEngine(attendance_ledger, audit=audit_trail)
    leave_registry = LeaveRegistry(leaves_repo, reconciliation_engine, audit=audit_trail)
    payroll_aggregator = PayrollAggregator(
        payroll_repo,
        attendance_ledger,
        leave_registry,
        calculator=StandardStatutoryCalculator(),
        audit=audit_trail,
    )

    return Container(
        store=store,
        conn=conn,
        attendance_repo=attendance_repo,
        leaves_repo=leaves_repo,
        payroll_repo=payroll_repo,
        audit_repo=audit_repo,
        users_repo=users_repo,
        audit_trail=audit_trail,
        attendance_ledger=attendance_ledger,
        reconciliation_engine=reconciliation_engine,
        leave_registry=leave_registry,
        payroll_aggregator=payroll_aggregator,
    )
