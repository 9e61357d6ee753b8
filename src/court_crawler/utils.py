"""Utility functions for the court availability crawler."""

import calendar
import json
import logging
import math
import re
from collections.abc import Iterator
from datetime import date, datetime, timedelta
from typing import Any

logger = logging.getLogger(__name__)

date_regex = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def validate_date(date_str: str) -> bool:
    """Validate date format (YYYY-MM-DD).

    Args:
        date_str: Date string to validate

    Returns:
        True if valid, False otherwise
    """
    try:
        if not re.match(date_regex, date_str):
            return False

        datetime.strptime(date_str, "%Y-%m-%d")
        return True

    except (ValueError, TypeError):
        return False


def parse_date(date_str: str) -> date:
    """Parse a YYYY-MM-DD string.

    Raises:
        ValueError: If the string is not a valid date
    """
    if not validate_date(date_str):
        raise ValueError(f"Invalid date '{date_str}'. Use YYYY-MM-DD format.")
    return datetime.strptime(date_str, "%Y-%m-%d").date()


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Yield every calendar day from start to end, both inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """Return the first and last calendar day of a month."""
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month: {month}")
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def compact_date(day: date) -> str:
    """Format a date as YYYYMMDD."""
    return day.strftime("%Y%m%d")


def format_hour(hours: float) -> str:
    """Render a fractional hour as a whole-hour HH:00 label.

    Only the text is floored, e.g. 9.5 -> "09:00".
    """
    return f"{math.floor(hours):02d}:00"


def shift_time(time_str: str, hours: float) -> str:
    """Add hours to an HH:MM string without wrapping past midnight."""
    hour, minute = map(int, time_str.split(":"))
    total = hour * 60 + minute + round(hours * 60)
    return f"{total // 60:02d}:{total % 60:02d}"


def decode_json_body(body: Any) -> Any:
    """Decode a response body that may be JSON served as text.

    Strings and bytes are stripped of a leading BOM and parsed; anything
    else is returned as is.

    Raises:
        ValueError: If a text body is not valid JSON
    """
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    if isinstance(body, str):
        return json.loads(body.lstrip("\ufeff"))
    return body


def truncate(text: Any, limit: int = 500) -> str:
    """Shorten a body for error details."""
    value = text if isinstance(text, str) else repr(text)
    return value[:limit]
