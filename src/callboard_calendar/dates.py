"""Date parsing and formatting helpers.

Source data comes from free-text and legacy columns, so parsing here is
lenient: bad tokens are dropped instead of failing the whole batch.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Any

from dateutil import tz
from dateutil.parser import isoparse
from dateutil.parser import parse as parse_dt

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def parse_local_date(value: str) -> datetime:
    """Parse 'YYYY-MM-DD' as a naive local midnight (no UTC shift)."""
    year, month, day = (int(part) for part in value.strip().split("-"))
    return datetime(year, month, day)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a stored timestamp. Returns None when it can't be read."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        return isoparse(text)
    except (ValueError, OverflowError):
        pass
    try:
        return parse_dt(text)
    except (ValueError, OverflowError):
        return None


def _parse_token(token: Any) -> datetime | None:
    if isinstance(token, (datetime, date)):
        return parse_timestamp(token)
    if not isinstance(token, str):
        return None
    token = token.strip()
    if not token:
        return None
    try:
        return isoparse(token)
    except (ValueError, OverflowError):
        return None


def sort_key(value: datetime) -> datetime:
    """Sort key that lets naive and aware datetimes be ordered together.

    Aware values are compared in UTC; naive values are taken as they are.
    """
    if value.tzinfo is not None and value.utcoffset() is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_date_data(value: str | list | None) -> list[datetime]:
    """Parse a date list stored as an array or a comma-separated string."""
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        tokens = list(value)
    elif isinstance(value, str):
        tokens = [part.strip() for part in value.split(",") if part.strip()]
    else:
        tokens = [value]

    dates = [d for d in (_parse_token(t) for t in tokens) if d is not None]
    return sorted(dates, key=sort_key)


def get_date_range(value: str | list | None) -> tuple[datetime | None, datetime | None]:
    """Return the first and last date of a date list, or (None, None)."""
    dates = parse_date_data(value)
    if not dates:
        return None, None
    return dates[0], dates[-1]


def epoch_millis(value: datetime) -> int:
    """Milliseconds since the epoch. Naive values are read as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - _EPOCH) // timedelta(milliseconds=1)


def align(value: datetime, reference: datetime) -> datetime:
    """Make value comparable with reference (same naive/aware flavour)."""
    if reference.tzinfo is None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    if reference.tzinfo is not None and value.tzinfo is None:
        return value.replace(tzinfo=reference.tzinfo)
    return value


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(value: datetime) -> datetime:
    return value.replace(hour=23, minute=59, second=59, microsecond=999000)


# ---------------------------------------------------------------------------
# Presentation helpers (US formatting, caller-chosen time zone)
# ---------------------------------------------------------------------------

def get_timezone(name: str | None) -> tzinfo | None:
    """Resolve an IANA zone name. Returns None if it is unknown."""
    if not name:
        return None
    return tz.gettz(name)


def to_local(value: datetime, tz_name: str | None) -> datetime:
    """Convert an aware datetime into tz_name. Naive values pass through."""
    zone = get_timezone(tz_name)
    if zone is None or value.tzinfo is None:
        return value
    return value.astimezone(zone)


def localize(value: datetime, tz_name: str | None) -> datetime:
    """Read a naive datetime as wall-clock time in tz_name. Aware values pass through."""
    zone = get_timezone(tz_name)
    if zone is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=zone)


def date_key_in_timezone(value: datetime, tz_name: str | None = None) -> str:
    local = to_local(value, tz_name)
    return f"{local.year:04d}-{local.month:02d}-{local.day:02d}"


def format_us_time(value: datetime, tz_name: str | None = None) -> str:
    local = to_local(value, tz_name)
    hour = local.hour % 12 or 12
    suffix = "AM" if local.hour < 12 else "PM"
    return f"{hour}:{local.minute:02d} {suffix}"


def format_us_date_long(value: datetime, tz_name: str | None = None) -> str:
    local = to_local(value, tz_name)
    return f"{local:%A}, {local:%B} {local.day}, {local.year}"


def format_date_heading(date_key: str) -> str:
    """Render a 'YYYY-MM-DD' key as a long heading. Falls back to the key."""
    try:
        day = parse_local_date(date_key)
    except ValueError:
        return date_key
    return format_us_date_long(day)
