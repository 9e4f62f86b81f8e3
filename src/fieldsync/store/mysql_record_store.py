from __future__ import annotations

import json
from typing import Any, Dict, Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .record_store import ChangeListener, ChangeNotifier, RecordStore, Unsubscribe, split_path


def _decode(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    return json.loads(value) if isinstance(value, str) else value


class MySQLRecordStore(RecordStore):
    """Record store backed by the ``records`` table (one row per leaf document).

    Subscriptions are in-process only: listeners hear writes made through
    this instance, not writes made by other processes.
    """

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory
        self._notifier = ChangeNotifier()

    @staticmethod
    def _normalize(path: str) -> str:
        return "/".join(split_path(path))

    def read(self, path: str) -> Optional[Any]:
        path = self._normalize(path)
        prefix = path + "/"
        with db_cursor(self._conn_factory, path=path) as cur:
            cur.execute(
                """
                SELECT path, value
                FROM records
                WHERE path=%s OR LEFT(path, CHAR_LENGTH(%s))=%s
                ORDER BY path
                """,
                (path, prefix, prefix),
            )
            rows = fetchall(cur)

        if not rows:
            return None
        for r in rows:
            if r["path"] == path:
                return _decode(r["value"])

        tree: Dict[str, Any] = {}
        for r in rows:
            node = tree
            segments = split_path(r["path"][len(prefix):])
            for segment in segments[:-1]:
                node = node.setdefault(segment, {})
            node[segments[-1]] = _decode(r["value"])
        return tree

    def write(self, path: str, value: Any) -> None:
        path = self._normalize(path)
        prefix = path + "/"
        parent = "/".join(split_path(path)[:-1])
        with db_cursor(self._conn_factory, path=path) as cur:
            cur.execute(
                "DELETE FROM records WHERE path=%s OR LEFT(path, CHAR_LENGTH(%s))=%s",
                (path, prefix, prefix),
            )
            cur.execute(
                "INSERT INTO records(path, parent_path, value) VALUES(%s,%s,%s)",
                (path, parent, json.dumps(value, default=str)),
            )
        self._notifier.notify(path, value)

    def delete(self, path: str) -> None:
        path = self._normalize(path)
        prefix = path + "/"
        with db_cursor(self._conn_factory, path=path) as cur:
            cur.execute(
                "DELETE FROM records WHERE path=%s OR LEFT(path, CHAR_LENGTH(%s))=%s",
                (path, prefix, prefix),
            )
        self._notifier.notify(path, None)

    def children(self, path: str) -> Dict[str, Any]:
        node = self.read(path)
        return node if isinstance(node, dict) else {}

    def subscribe(self, path: str, on_change: ChangeListener) -> Unsubscribe:
        return self._notifier.subscribe(self._normalize(path), on_change)
