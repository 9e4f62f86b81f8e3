from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.constants import USERS_ROOT
from ..store.record_store import RecordStore
from .model import User


class UserDirectory(Protocol):
    def list_users(self) -> Sequence[User]:
        raise NotImplementedError

    def get_by_username(self, username: str) -> Optional[User]:
        raise NotImplementedError

    def list_usernames(self) -> list[str]:
        raise NotImplementedError


class StoreUserRepository(UserDirectory):
    """Read-only view of ``users/{uid}``.

    Entries without a name or username are ignored, and the first entry wins
    when two share a username.
    """

    def __init__(self, store: RecordStore):
        self._store = store

    def list_users(self) -> Sequence[User]:
        seen: set[str] = set()
        users: list[User] = []
        for uid, data in sorted(self._store.children(USERS_ROOT).items()):
            if not isinstance(data, dict):
                continue
            user = User.from_dict(uid, data)
            if not user.username or not user.name or user.username in seen:
                continue
            seen.add(user.username)
            users.append(user)
        return users

    def get_by_username(self, username: str) -> Optional[User]:
        return next((u for u in self.list_users() if u.username == username), None)

    def list_usernames(self) -> list[str]:
        return [u.username for u in self.list_users()]
