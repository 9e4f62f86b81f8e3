from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class User:
    """A directory entry under ``users/{uid}``.

    The directory is maintained elsewhere; this service only reads it.
    """

    uid: str
    username: str
    name: str
    role: Optional[str] = None

    @classmethod
    def from_dict(cls, uid: str, data: Mapping[str, Any]) -> "User":
        return cls(
            uid=uid,
            username=str(data.get("username") or "").strip(),
            name=str(data.get("name") or "").strip(),
            role=data.get("role"),
        )

    def to_view(self) -> dict[str, Any]:
        return {"uid": self.uid, "username": self.username, "name": self.name, "role": self.role}
