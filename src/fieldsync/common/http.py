from __future__ import annotations

from functools import wraps
from typing import Any

from flask import jsonify, request

from ..core.exceptions import ConcurrentModificationError, NotFoundError, StoreUnavailableError, ValidationError
from ..core.logging import get_logger
from .datetime_utils import format_date

logger = get_logger(__name__)


def ok(payload: Any = None, status: int = 200):
    body = {"success": True}
    if payload is not None:
        body["data"] = payload
    return jsonify(body), status


def fail(message: str, status: int, **extra: Any):
    return jsonify({"success": False, "message": message, **extra}), status


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def expected_version(body: dict) -> int | None:
    value = body.get("expectedVersion", request.args.get("expectedVersion"))
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"expectedVersion must be an integer, got {value!r}")


def api_view(view):
    """Map domain errors raised by a view to JSON error responses."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except ValidationError as e:
            return fail(str(e), 400)
        except NotFoundError as e:
            return fail(str(e), 404)
        except ConcurrentModificationError as e:
            return fail(str(e), 409, expected=e.expected, actual=e.actual)
        except StoreUnavailableError as e:
            extra = {}
            if e.failed_date is not None:
                extra = {
                    "username": e.username,
                    "failedDate": format_date(e.failed_date),
                    "appliedDates": [format_date(d) for d in e.applied_dates],
                }
            return fail(str(e), 503, **extra)
        except Exception as e:
            logger.exception("request_failed", path=request.path, error=str(e))
            return fail("Internal server error", 500)

    return wrapper
