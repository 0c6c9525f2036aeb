"""
Time parsing for shift timestamps.

Clients send start/end times in several layouts (ISO 8601 from the web app,
"YYYY-MM-DD HH:MM" from the mobile roster screen). Everything is normalized to
a naive UTC datetime, the representation stored in the database.

Zone-less values are taken as UTC wall clock exactly as sent; nothing is
converted through the server's local timezone. Values with an explicit offset
are normalized to the same instant in UTC.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Optional

from ...exceptions import InvalidTimeFormatError

# Tried in order; first match wins
TIME_LAYOUTS = (
    "%Y-%m-%dT%H:%M:%S%z",  # 2024-05-01T09:00:00+09:30 / 2024-05-01T09:00:00Z
    "%Y-%m-%dT%H:%M:%S.%f%z",  # 2024-05-01T09:00:00.123456Z
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%d %H:%M",
)

DATE_LAYOUT = "%Y-%m-%d"

# Zero-padded fields only; offsets need a colon and only the T layouts with seconds carry a zone
_TIMESTAMP_SHAPE = re.compile(
    r"\d{4}-\d{2}-\d{2}"
    r"(?:T\d{2}:\d{2}:\d{2}(?:\.\d+)?(?:Z|[+-]\d{2}:\d{2})|[T ]\d{2}:\d{2}(?::\d{2})?)",
    re.ASCII,
)

_DATE_SHAPE = re.compile(r"\d{4}-\d{2}-\d{2}", re.ASCII)

# strptime's %f stops at microseconds; nanosecond timestamps are truncated
_EXTRA_FRACTION_DIGITS = re.compile(r"(\.\d{6})\d+")


def to_canonical(value: datetime) -> datetime:
    """Normalize a datetime to naive UTC"""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_time(value: str, field: Optional[str] = None) -> datetime:
    """Parse a timestamp in any accepted layout; raises InvalidTimeFormatError"""
    if not isinstance(value, str):
        raise InvalidTimeFormatError(str(value), field)

    text = value.strip()
    if not _TIMESTAMP_SHAPE.fullmatch(text):
        raise InvalidTimeFormatError(value, field)

    text = _EXTRA_FRACTION_DIGITS.sub(r"\1", text)

    for layout in TIME_LAYOUTS:
        try:
            parsed = datetime.strptime(text, layout)
        except ValueError:
            continue
        return to_canonical(parsed)

    raise InvalidTimeFormatError(value, field)


def parse_optional_time(value: Optional[str], field: Optional[str] = None) -> Optional[datetime]:
    if value is None:
        return None
    return parse_time(value, field)


def parse_date(value: str, field: Optional[str] = None) -> datetime:
    """Parse a YYYY-MM-DD date as midnight UTC"""
    if not isinstance(value, str) or not _DATE_SHAPE.fullmatch(value.strip()):
        raise InvalidTimeFormatError(str(value), field)

    try:
        return datetime.strptime(value.strip(), DATE_LAYOUT)
    except ValueError as e:
        raise InvalidTimeFormatError(value, field) from e


def end_of_day_exclusive(day: datetime) -> datetime:
    """Upper bound that makes a date filter include the whole day"""
    return day + timedelta(days=1)


def format_utc(value: Optional[datetime]) -> Optional[str]:
    """Render a stored naive UTC datetime as ISO 8601 with a Z suffix"""
    if value is None:
        return None
    return to_canonical(value).isoformat() + "Z"
