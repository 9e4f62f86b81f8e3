from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.constants import AUDIT_ROOT
from ..store.record_store import RecordStore, join_path
from .model import AuditLogEntry


class AuditRepository(Protocol):
    def append(self, entry: AuditLogEntry) -> None:
        raise NotImplementedError

    def get(self, entry_id: str) -> Optional[AuditLogEntry]:
        raise NotImplementedError

    def list_all(self) -> Sequence[AuditLogEntry]:
        raise NotImplementedError


class StoreAuditRepository(AuditRepository):
    """Entries live under ``auditLogs/{entryId}``; there is no update or delete."""

    def __init__(self, store: RecordStore):
        self._store = store

    def append(self, entry: AuditLogEntry) -> None:
        self._store.write(join_path(AUDIT_ROOT, entry.entry_id), entry.to_dict())

    def get(self, entry_id: str) -> Optional[AuditLogEntry]:
        data = self._store.read(join_path(AUDIT_ROOT, entry_id))
        return AuditLogEntry.from_dict(entry_id, data) if data else None

    def list_all(self) -> Sequence[AuditLogEntry]:
        rows = self._store.children(AUDIT_ROOT)
        return [AuditLogEntry.from_dict(entry_id, data) for entry_id, data in rows.items() if isinstance(data, dict)]
