import json

import mysql.connector
import pytest

from fieldsync.core.exceptions import StoreUnavailableError
from fieldsync.store.mysql_record_store import MySQLRecordStore


class FakeCursor:
    def __init__(self, rows=None, fail_on=None):
        self.rows = rows or []
        self.fail_on = fail_on
        self.executed = []
        self.closed = False

    def execute(self, sql, params=()):
        if self.fail_on and self.fail_on in sql:
            raise mysql.connector.errors.OperationalError("Lost connection to MySQL server")
        self.executed.append((" ".join(sql.split()), params))

    def fetchall(self):
        return self.rows

    def close(self):
        self.closed = True


class FakeConnection:
    def __init__(self, cursor):
        self._cursor = cursor
        self.committed = False
        self.rolled_back = False
        self.closed = False

    def cursor(self, dictionary=False):
        return self._cursor

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rolled_back = True

    def close(self):
        self.closed = True


class FakeConnectionFactory:
    def __init__(self, cursor=None, refuse=False):
        self.cursor = cursor or FakeCursor()
        self.refuse = refuse
        self.connections = []

    def connect(self, *, with_database=True):
        if self.refuse:
            raise mysql.connector.errors.InterfaceError("Can't connect to MySQL server")
        conn = FakeConnection(self.cursor)
        self.connections.append(conn)
        return conn


def test_read_assembles_subtree_from_rows():
    cursor = FakeCursor(
        rows=[
            {"path": "attendance/2024-03-10/alice", "value": json.dumps({"status": "present"})},
            {"path": "attendance/2024-03-10/bob", "value": b'{"status": "absent"}'},
        ]
    )
    store = MySQLRecordStore(FakeConnectionFactory(cursor))

    assert store.read("attendance/2024-03-10") == {
        "alice": {"status": "present"},
        "bob": {"status": "absent"},
    }


def test_write_replaces_subtree_and_commits():
    factory = FakeConnectionFactory()
    store = MySQLRecordStore(factory)
    events = []
    store.subscribe("salaries/alice", lambda path, value: events.append(path))

    store.write("salaries/alice/2024-04", {"netSalary": 18450.0})

    (delete_sql, _), (insert_sql, insert_params) = factory.cursor.executed
    assert delete_sql.startswith("DELETE FROM records")
    assert insert_sql.startswith("INSERT INTO records")
    assert insert_params == ("salaries/alice/2024-04", "salaries/alice", json.dumps({"netSalary": 18450.0}))
    assert factory.connections[0].committed and factory.connections[0].closed
    assert events == ["salaries/alice/2024-04"]


def test_connector_failure_rolls_back_and_raises_store_unavailable():
    factory = FakeConnectionFactory(FakeCursor(fail_on="INSERT"))
    store = MySQLRecordStore(factory)

    with pytest.raises(StoreUnavailableError) as exc_info:
        store.write("attendance/2024-03-10/alice", {"status": "on_leave"})

    conn = factory.connections[0]
    assert exc_info.value.path == "attendance/2024-03-10/alice"
    assert conn.rolled_back and not conn.committed and conn.closed
    assert factory.cursor.closed


def test_refused_connection_raises_store_unavailable():
    store = MySQLRecordStore(FakeConnectionFactory(refuse=True))
    with pytest.raises(StoreUnavailableError):
        store.read("users")
