"""Clock capability so "now" can be fixed in tests."""

from datetime import datetime
from typing import Protocol

import pytz


class Clock(Protocol):
    def now(self) -> datetime:
        """Current instant, timezone-aware."""
        ...


class SystemClock:
    """Reads the system clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(pytz.UTC)


class FixedClock:
    """Always returns the same instant."""

    def __init__(self, instant: datetime):
        if instant.tzinfo is None:
            instant = pytz.UTC.localize(instant)
        self.instant = instant

    def now(self) -> datetime:
        return self.instant

    def advance_to(self, instant: datetime):
        """Move the clock to another instant."""
        if instant.tzinfo is None:
            instant = pytz.UTC.localize(instant)
        self.instant = instant
