from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Optional
from uuid import uuid4

from ..common.datetime_utils import now_local
from ..common.validators import require_non_empty
from ..core.constants import DEFAULT_AUDIT_LIMIT
from ..core.enums import AuditAction
from ..core.logging import get_logger
from ..store.record_store import is_under
from .model import AuditLogEntry
from .repository import AuditRepository

logger = get_logger(__name__)


class AuditTrail:
    def __init__(self, entries: AuditRepository, *, clock: Callable[[], datetime] = now_local):
        self._entries = entries
        self._clock = clock

    def record(
        self,
        *,
        actor: str,
        action: AuditAction | str,
        subject: str,
        before: Optional[Any] = None,
        after: Optional[Any] = None,
    ) -> AuditLogEntry:
        now = self._clock()
        # Time-prefixed ids keep the store's key order close to insertion order.
        entry = AuditLogEntry(
            entry_id=f"{now.strftime('%Y%m%d%H%M%S%f')}-{uuid4().hex[:8]}",
            actor=require_non_empty(actor, "actor"),
            action=action.value if isinstance(action, AuditAction) else str(action),
            subject=subject,
            timestamp=now,
            before=before,
            after=after,
        )
        self._entries.append(entry)
        logger.debug("audit_recorded", entry_id=entry.entry_id, action=entry.action, subject=subject)
        return entry

    def list(self, *, subject_prefix: Optional[str] = None, action: Optional[str] = None, limit: int = DEFAULT_AUDIT_LIMIT) -> list[AuditLogEntry]:
        """Newest first."""
        entries = [
            e
            for e in self._entries.list_all()
            if (subject_prefix is None or is_under(e.subject, subject_prefix))
            and (action is None or e.action == action)
        ]
        entries.sort(key=lambda e: (e.timestamp, e.entry_id), reverse=True)
        return entries[: int(limit)]
