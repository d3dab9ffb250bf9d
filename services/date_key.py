"""Date key codec and local wall-clock <-> instant conversion.

A date key identifies one calendar day as ``"{year}-{month}-{day}"`` with a
1-indexed, unpadded month and day (``"2025-6-2"``). Every conversion between
local date/time strings and absolute instants goes through this module; the
local wall clock is a named pytz timezone taken from ``POLL_TIMEZONE``.
"""

import os
from datetime import date, datetime, tzinfo
from typing import Iterable, Union

import pytz

from services.clock import Clock
from services.errors import DateKeyError

DEFAULT_TIMEZONE = "UTC"

# New candidate dates are proposed at this local hour
CANDIDATE_HOUR = 19

TimezoneLike = Union[str, tzinfo, None]


def get_local_timezone(tz: TimezoneLike = None) -> tzinfo:
    """Resolve a timezone name or object, defaulting to POLL_TIMEZONE."""
    if tz is None:
        tz = os.getenv("POLL_TIMEZONE", DEFAULT_TIMEZONE)
    if isinstance(tz, str):
        return pytz.timezone(tz)
    return tz


def _as_utc(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        instant = pytz.UTC.localize(instant)
    return instant.astimezone(pytz.UTC)


# ============================================================================
# DATE KEYS
# ============================================================================

def encode_date_key(year: int, month: int, day: int) -> str:
    """Build a date key. Components are not validated."""
    return f"{year}-{month}-{day}"


def decode_date_key(key: str) -> tuple[int, int, int]:
    """Split a date key into (year, month, day)."""
    parts = key.split("-")
    if len(parts) != 3:
        raise DateKeyError(f"Date key must have 3 parts: {key!r}")
    try:
        year, month, day = (int(part) for part in parts)
    except ValueError as e:
        raise DateKeyError(f"Date key has non-numeric parts: {key!r}") from e
    return year, month, day


def date_key_to_date(key: str) -> date:
    year, month, day = decode_date_key(key)
    return date(year, month, day)


def date_to_date_key(value: date) -> str:
    return encode_date_key(value.year, value.month, value.day)


def date_key_to_instant(
    key: str,
    hour: int = CANDIDATE_HOUR,
    minute: int = 0,
    tz: TimezoneLike = None
) -> datetime:
    """Instant of a date key at the given local wall-clock time."""
    year, month, day = decode_date_key(key)
    local = get_local_timezone(tz).localize(datetime(year, month, day, hour, minute))
    return local.astimezone(pytz.UTC)


def instant_to_date_key(instant: datetime, tz: TimezoneLike = None) -> str:
    """Date key of the local calendar day an instant falls on."""
    local = _as_utc(instant).astimezone(get_local_timezone(tz))
    return encode_date_key(local.year, local.month, local.day)


def date_key_sort_key(key: str) -> tuple[int, int, int]:
    return decode_date_key(key)


def sort_date_keys(keys: Iterable[str]) -> list[str]:
    """Chronological order (``"2025-6-10"`` after ``"2025-6-9"``)."""
    return sorted(keys, key=date_key_sort_key)


def format_date_label(key: str) -> str:
    """Short ``M/D`` column label."""
    _, month, day = key.split("-")
    return f"{int(month)}/{int(day)}"


# ============================================================================
# LOCAL DATE/TIME STRINGS <-> INSTANTS
# ============================================================================

def date_time_to_instant(date_str: str, time_str: str, tz: TimezoneLike = None) -> datetime:
    """
    Interpret ``YYYY-MM-DD`` and ``HH:mm`` as local wall-clock time.

    Args:
        date_str: Date string, components may be unpadded
        time_str: Time string, components may be unpadded
        tz: Local timezone (defaults to POLL_TIMEZONE)

    Returns:
        Timezone-aware instant in UTC
    """
    year, month, day = (int(part) for part in date_str.split("-"))
    hour, minute = (int(part) for part in time_str.split(":"))
    local = get_local_timezone(tz).localize(datetime(year, month, day, hour, minute, 0))
    return local.astimezone(pytz.UTC)


def instant_to_date_string(instant: datetime, tz: TimezoneLike = None) -> str:
    local = _as_utc(instant).astimezone(get_local_timezone(tz))
    return f"{local.year:04d}-{local.month:02d}-{local.day:02d}"


def instant_to_time_string(instant: datetime, tz: TimezoneLike = None) -> str:
    local = _as_utc(instant).astimezone(get_local_timezone(tz))
    return f"{local.hour:02d}:{local.minute:02d}"


def local_today(clock: Clock, tz: TimezoneLike = None) -> date:
    """Today's date on the local wall clock."""
    return clock.now().astimezone(get_local_timezone(tz)).date()


def is_past_instant(instant: datetime, clock: Clock) -> bool:
    """True if the instant is now or earlier."""
    return _as_utc(instant) <= clock.now()


# ============================================================================
# ISO STRINGS
# ============================================================================

def parse_iso_instant(value: str) -> datetime:
    """Parse an ISO 8601 instant (``Z`` or numeric offset). Naive means UTC."""
    text = value.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    return _as_utc(datetime.fromisoformat(text))


def format_iso_instant(instant: datetime) -> str:
    """Format as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    utc = _as_utc(instant)
    return utc.strftime("%Y-%m-%dT%H:%M:%S") + f".{utc.microsecond // 1000:03d}Z"


def date_time_to_iso(date_str: str, time_str: str, tz: TimezoneLike = None) -> str:
    return format_iso_instant(date_time_to_instant(date_str, time_str, tz))


def iso_to_date_string(value: str, tz: TimezoneLike = None) -> str:
    return instant_to_date_string(parse_iso_instant(value), tz)


def iso_to_time_string(value: str, tz: TimezoneLike = None) -> str:
    return instant_to_time_string(parse_iso_instant(value), tz)


# ============================================================================
# NORMALIZATION
# ============================================================================

def normalize_date_format(date_str: str) -> str:
    """Zero-pad month and day (``2025-1-5`` -> ``2025-01-05``). No range check."""
    parts = date_str.split("-")
    if len(parts) != 3:
        return date_str
    year, month, day = parts
    return f"{year}-{month.rjust(2, '0')}-{day.rjust(2, '0')}"


def normalize_time_format(time_str: str) -> str:
    """Zero-pad hour and minute (``9:5`` -> ``09:05``). No range check."""
    parts = time_str.split(":")
    if len(parts) != 2:
        return time_str
    hour, minute = parts
    return f"{hour.rjust(2, '0')}:{minute.rjust(2, '0')}"
