from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from typing import Any, Iterator, Optional, Tuple, Union

from ..core.exceptions import ValidationError

DateLike = Union[date, datetime, str]


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mock easier.
    """
    return datetime.now()


def as_calendar_date(value: DateLike, field_name: str = "date") -> date:
    """Normalize a date, datetime or ISO string to a calendar date.

    Datetimes lose their time-of-day (and tz) so span arithmetic is done on
    whole days only.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return parse_iso_date(text[:10])
        except ValueError:
            raise ValidationError(f"{field_name} is not a valid date: {value!r}")
    raise ValidationError(f"{field_name} is not a valid date: {value!r}")


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every calendar day in [start, end]."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def parse_year_month(value: str) -> Tuple[int, int]:
    try:
        parsed = datetime.strptime((value or "").strip(), "%Y-%m")
    except ValueError:
        raise ValidationError(f"year_month must be YYYY-MM, got {value!r}")
    return parsed.year, parsed.month


def month_bounds(year_month: str) -> Tuple[date, date]:
    year, month = parse_year_month(year_month)
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def clip_span(start: date, end: date, lower: date, upper: date) -> int:
    """Number of days of [start, end] that fall inside [lower, upper]."""
    first = max(start, lower)
    last = min(end, upper)
    if first > last:
        return 0
    return (last - first).days + 1


def format_date(value: date) -> str:
    return value.strftime("%Y-%m-%d")


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Read a stored timestamp.

    Accepts ISO strings and epoch milliseconds (records written by the
    browser dashboard use ``Date.now()``).
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000)
    return datetime.fromisoformat(str(value))
