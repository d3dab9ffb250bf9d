"""Set toggles over date keys: single day, weekday column, week row."""

from typing import AbstractSet, Iterable, Optional

from models.entities import CalendarCell, DayCell


def column_keys(grid: Iterable[CalendarCell], day_of_week: int) -> list[str]:
    """Date keys of the day cells in one weekday column (0 = Sunday)."""
    if not 0 <= day_of_week <= 6:
        raise ValueError(f"day_of_week must be between 0 and 6, got {day_of_week}")
    return [
        cell.date_key
        for index, cell in enumerate(grid)
        if index % 7 == day_of_week and isinstance(cell, DayCell)
    ]


def row_keys(grid: Iterable[CalendarCell], week_index: int) -> list[str]:
    """Date keys of the day cells in one week row."""
    if week_index < 0:
        raise ValueError(f"week_index must not be negative, got {week_index}")
    start = week_index * 7
    row = tuple(grid)[start:start + 7]
    return [cell.date_key for cell in row if isinstance(cell, DayCell)]


class SelectionEngine:
    """
    Toggles membership of date keys in a selection.

    When ``candidate_dates`` is given (voting), keys outside it are skipped
    silently. Without it (event creation) every day is selectable.

    Every toggle returns a new frozenset; the selection passed in is never
    modified. Batch toggles flip each qualifying key relative to the
    selection as it was on entry.
    """

    def __init__(self, candidate_dates: Optional[Iterable[str]] = None):
        self.candidate_dates = frozenset(candidate_dates) if candidate_dates is not None else None

    @property
    def gated(self) -> bool:
        return self.candidate_dates is not None

    def is_selectable(self, key: str) -> bool:
        return self.candidate_dates is None or key in self.candidate_dates

    def toggle_single(self, selected: AbstractSet[str], key: str) -> frozenset[str]:
        return self._toggle_batch(selected, [key])

    def toggle_column(
        self,
        selected: AbstractSet[str],
        day_of_week: int,
        grid: Iterable[CalendarCell]
    ) -> frozenset[str]:
        return self._toggle_batch(selected, column_keys(grid, day_of_week))

    def toggle_row(
        self,
        selected: AbstractSet[str],
        week_index: int,
        grid: Iterable[CalendarCell]
    ) -> frozenset[str]:
        return self._toggle_batch(selected, row_keys(grid, week_index))

    def _toggle_batch(self, selected: AbstractSet[str], keys: Iterable[str]) -> frozenset[str]:
        toggled = {key for key in keys if self.is_selectable(key)}
        return frozenset(selected) ^ toggled
