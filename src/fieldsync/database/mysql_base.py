from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List

import mysql.connector

from ..core.exceptions import StoreUnavailableError
from ..core.logging import get_logger
from .connection import DatabaseConnection

logger = get_logger(__name__)


def _unavailable(path: str, error: Exception) -> StoreUnavailableError:
    logger.error("store_call_failed", path=path, error=str(error))
    return StoreUnavailableError(f"Record store unavailable for {path}: {error}", path=path)


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, path: str, dictionary: bool = True) -> Iterator[Any]:
    """Cursor on a short-lived connection: commit on success, rollback on error.

    Connector errors (refused connection, timeout, lost connection) are
    raised as :class:`StoreUnavailableError` for ``path``.
    """
    try:
        conn = conn_factory.connect()
    except mysql.connector.Error as e:
        raise _unavailable(path, e) from e

    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.Error as e:
        try:
            conn.rollback()
        except mysql.connector.Error as rollback_error:
            logger.warning("store_rollback_failed", path=path, error=str(rollback_error))
        raise _unavailable(path, e) from e
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])
