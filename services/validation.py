"""Date/time string validation and settings document checks."""

import calendar
import math
import re
from datetime import date
from typing import Any, Optional

from services.clock import Clock, SystemClock
from services.date_key import TimezoneLike, date_time_to_instant, is_past_instant
from services.errors import SettingsValidationError

DATE_PATTERN = re.compile(r"\d{4}-\d{1,2}-\d{1,2}", re.ASCII)
TIME_PATTERN = re.compile(r"\d{1,2}:\d{1,2}", re.ASCII)

_MISSING = object()


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def is_valid_date(date_str: str) -> bool:
    """True for an existing ``YYYY-M-D`` calendar date (leap years respected)."""
    if not isinstance(date_str, str) or not DATE_PATTERN.fullmatch(date_str):
        return False

    year, month, day = (int(part) for part in date_str.split("-"))
    if month < 1 or month > 12:
        return False
    if day < 1 or day > days_in_month(year, month):
        return False

    try:
        parsed = date(year, month, day)
    except ValueError:
        return False
    return (parsed.year, parsed.month, parsed.day) == (year, month, day)


def is_valid_time(time_str: str) -> bool:
    """True for ``H:M`` with hour 0-23 and minute 0-59."""
    if not isinstance(time_str, str) or not TIME_PATTERN.fullmatch(time_str):
        return False
    hour, minute = (int(part) for part in time_str.split(":"))
    return 0 <= hour <= 23 and 0 <= minute <= 59


def is_past_datetime(
    date_str: str,
    time_str: str,
    clock: Optional[Clock] = None,
    tz: TimezoneLike = None
) -> bool:
    """True if the local date/time is now or earlier."""
    clock = clock or SystemClock()
    return is_past_instant(date_time_to_instant(date_str, time_str, tz), clock)


def _is_bool(value: Any) -> bool:
    return isinstance(value, bool)


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    if not isinstance(value, float):
        return False
    # overflowing literals such as 1e400 parse as inf
    return math.isfinite(value)


def validate_settings_document(
    data: Any,
    clock: Optional[Clock] = None,
    tz: TimezoneLike = None,
    require_future_deadline: bool = True
) -> None:
    """
    Check a parsed settings document field by field.

    The first failing field raises; nothing after it is checked.

    Args:
        data: Result of ``json.loads`` on the settings document
        clock: Source of "now" for the deadline check
        tz: Local timezone the deadline is expressed in
        require_future_deadline: Reject an enabled deadline that is not in the future

    Raises:
        SettingsValidationError: With a message naming the offending field
    """
    if not isinstance(data, dict):
        raise SettingsValidationError("settings must be a JSON object")

    if not _is_bool(data.get("allowSettingChanges")):
        raise SettingsValidationError("allowSettingChanges must be a boolean")

    deadline = data.get("deadline")
    if not isinstance(deadline, dict):
        raise SettingsValidationError("deadline object is required")

    if not _is_bool(deadline.get("enable")):
        raise SettingsValidationError("deadline.enable must be a boolean")

    if deadline["enable"]:
        deadline_date = deadline.get("date")
        if not isinstance(deadline_date, str):
            raise SettingsValidationError("deadline.date must be a string")
        if not is_valid_date(deadline_date):
            raise SettingsValidationError("deadline.date must be a valid date in YYYY-MM-DD format")

        deadline_time = deadline.get("time")
        if not isinstance(deadline_time, str):
            raise SettingsValidationError("deadline.time must be a string")
        if not is_valid_time(deadline_time):
            raise SettingsValidationError("deadline.time must be a valid time in HH:mm format")

        try:
            deadline_instant = date_time_to_instant(deadline_date, deadline_time, tz)
        except (OverflowError, ValueError) as e:
            # the local time has no UTC instant near year 1 or 9999
            raise SettingsValidationError(
                "deadline.date must be a valid date in YYYY-MM-DD format"
            ) from e

        if require_future_deadline and is_past_instant(deadline_instant, clock or SystemClock()):
            raise SettingsValidationError("deadline must be a future date and time")

    auto_decision = data.get("autoDecision")
    if not isinstance(auto_decision, dict) or not _is_bool(auto_decision.get("enable")):
        raise SettingsValidationError("autoDecision.enable must be a boolean")

    threshold = auto_decision.get("threshold", _MISSING)
    if threshold is not None and not _is_number(threshold):
        raise SettingsValidationError("autoDecision.threshold must be a number or null")

    rss = data.get("rss")
    if not isinstance(rss, dict) or not _is_bool(rss.get("enable")):
        raise SettingsValidationError("rss.enable must be a boolean")
