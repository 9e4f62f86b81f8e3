from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from ..common.datetime_utils import format_timestamp, parse_timestamp


@dataclass(frozen=True)
class AuditLogEntry:
    """Append-only record of a mutation: who did what to which path, and when."""

    entry_id: str
    actor: str
    action: str
    subject: str
    timestamp: datetime
    before: Optional[Any] = None
    after: Optional[Any] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "actor": self.actor,
            "action": self.action,
            "subject": self.subject,
            "timestamp": format_timestamp(self.timestamp),
            "before": self.before,
            "after": self.after,
        }

    def to_view(self) -> dict[str, Any]:
        return {"entryId": self.entry_id, **self.to_dict()}

    @classmethod
    def from_dict(cls, entry_id: str, data: dict) -> "AuditLogEntry":
        return cls(
            entry_id=entry_id,
            actor=data.get("actor") or "",
            action=data.get("action") or "",
            subject=data.get("subject") or "",
            timestamp=parse_timestamp(data.get("timestamp")) or datetime.min,
            before=data.get("before"),
            after=data.get("after"),
        )
