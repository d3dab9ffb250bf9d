"""Month grid generation shared by the creation and voting calendars."""

import calendar
import math
from datetime import date
from typing import Iterator, Union

from models.entities import CalendarCell, DayCell, EmptyCell
from services.clock import Clock
from services.date_key import TimezoneLike, encode_date_key, local_today
from services.validation import days_in_month

WEEKDAY_LABELS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


class MonthGrid:
    """
    Ordered cells of one month.

    ``first_day_of_week`` empty cells (0 = Sunday) are followed by one day cell
    per day of the month. Iterating builds the cells again every time, so a
    grid can be walked any number of times.
    """

    def __init__(self, year: int, month: int):
        self.year = year
        self.month = month
        # calendar.weekday counts from Monday
        self.first_day_of_week = (calendar.weekday(year, month, 1) + 1) % 7
        self.days_in_month = days_in_month(year, month)

    def __iter__(self) -> Iterator[CalendarCell]:
        for position in range(self.first_day_of_week):
            yield EmptyCell(position=position)
        for day in range(1, self.days_in_month + 1):
            yield DayCell(
                position=self.first_day_of_week + day - 1,
                day=day,
                date_key=encode_date_key(self.year, self.month, day)
            )

    def __len__(self) -> int:
        return self.first_day_of_week + self.days_in_month

    def __getitem__(self, index: Union[int, slice]):
        return self.cells()[index]

    def __repr__(self) -> str:
        return f"MonthGrid({self.year}, {self.month})"

    def cells(self) -> tuple[CalendarCell, ...]:
        return tuple(self)

    @property
    def week_count(self) -> int:
        return math.ceil(len(self) / 7)

    def week(self, week_index: int) -> tuple[CalendarCell, ...]:
        """Cells of one row (fewer than 7 in the last row)."""
        start = week_index * 7
        return self.cells()[start:start + 7]

    def day_keys(self) -> list[str]:
        return [cell.date_key for cell in self if isinstance(cell, DayCell)]

    def reference_date(self) -> date:
        return date(self.year, self.month, 1)


def build_month_grid(reference: date) -> MonthGrid:
    """Grid for the month containing ``reference``."""
    return MonthGrid(reference.year, reference.month)


def prev_month(reference: date) -> date:
    """First day of the previous month."""
    if reference.month == 1:
        return date(reference.year - 1, 12, 1)
    return date(reference.year, reference.month - 1, 1)


def next_month(reference: date) -> date:
    """First day of the next month (Jan 31 goes to Feb 1, never March)."""
    if reference.month == 12:
        return date(reference.year + 1, 1, 1)
    return date(reference.year, reference.month + 1, 1)


def current_month(clock: Clock, tz: TimezoneLike = None) -> date:
    """First day of the current local month."""
    return local_today(clock, tz).replace(day=1)
