from __future__ import annotations

from typing import Iterator, Optional, Protocol, Sequence

from ..core.constants import LEAVE_ROOT
from ..core.exceptions import ConcurrentModificationError
from ..store.record_store import RecordStore, join_path
from .model import LeaveRequest


class LeaveRepository(Protocol):
    def get(self, username: str, request_id: str) -> Optional[LeaveRequest]:
        raise NotImplementedError

    def put(self, request: LeaveRequest, *, expected_version: Optional[int] = None) -> None:
        raise NotImplementedError

    def list_for_user(self, username: str) -> Sequence[LeaveRequest]:
        raise NotImplementedError

    def iter_all(self) -> Iterator[LeaveRequest]:
        raise NotImplementedError


class StoreLeaveRepository(LeaveRepository):
    """Leave requests live under ``leaveRequests/{username}/{requestId}``."""

    def __init__(self, store: RecordStore):
        self._store = store

    @staticmethod
    def path(username: str, request_id: str) -> str:
        return join_path(LEAVE_ROOT, username, request_id)

    def get(self, username: str, request_id: str) -> Optional[LeaveRequest]:
        data = self._store.read(self.path(username, request_id))
        if not data:
            return None
        return LeaveRequest.from_dict(username, request_id, data)

    def put(self, request: LeaveRequest, *, expected_version: Optional[int] = None) -> None:
        path = self.path(request.username, request.request_id)
        if expected_version is not None:
            current = self.get(request.username, request.request_id)
            actual = current.version if current else 0
            if actual != expected_version:
                raise ConcurrentModificationError(path, expected_version, actual)
        self._store.write(path, request.to_dict())

    def list_for_user(self, username: str) -> Sequence[LeaveRequest]:
        rows = self._store.children(join_path(LEAVE_ROOT, username))
        out = [
            LeaveRequest.from_dict(username, request_id, data)
            for request_id, data in rows.items()
            if isinstance(data, dict) and data.get("startDate") and data.get("endDate")
        ]
        out.sort(key=lambda r: r.timestamp, reverse=True)
        return out

    def iter_all(self) -> Iterator[LeaveRequest]:
        for username in self._store.children(LEAVE_ROOT):
            yield from self.list_for_user(username)
