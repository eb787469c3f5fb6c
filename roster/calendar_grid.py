"""Calendar date logic: local date keys, month grid and event bucketing.

Date keys are built from a value's own calendar fields and never go
through UTC, so a day picked in local time keys the same in every zone.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Optional

if TYPE_CHECKING:
    from roster.models import Event

# Grid columns run Monday..Sunday.
WEEKDAY_LABELS = ("Lun", "Mar", "Mer", "Gio", "Ven", "Sab", "Dom")

MONTH_NAMES = (
    "gennaio", "febbraio", "marzo", "aprile", "maggio", "giugno",
    "luglio", "agosto", "settembre", "ottobre", "novembre", "dicembre",
)


@dataclass(frozen=True)
class DayCell:
    """One grid position: blank padding or a calendar day."""

    date: Optional[dt.date] = None

    @property
    def is_blank(self) -> bool:
        return self.date is None

    @property
    def key(self) -> Optional[str]:
        return None if self.date is None else to_date_key(self.date)

    @property
    def day(self) -> Optional[int]:
        return None if self.date is None else self.date.day


def to_date_key(value: dt.date) -> str:
    """Format a date (or datetime) as ``YYYY-MM-DD`` from its own fields.

    An aware datetime is keyed in its own offset, never converted to UTC.
    """
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def parse_date_key(key: str) -> dt.date:
    """Parse a ``YYYY-MM-DD`` key into a date.

    Raises:
        ValueError: If the key is malformed or not a real date.
    """
    parts = key.split("-")
    if len(parts) != 3 or len(parts[0]) != 4 or len(parts[1]) != 2 or len(parts[2]) != 2:
        raise ValueError(f"Invalid date key: {key!r}")
    year, month, day = (int(p) for p in parts)
    return dt.date(year, month, day)


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Return (year, month) moved by ``delta`` months; month is 1-based."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def days_in_month(year: int, month: int) -> int:
    # Day 0 of next month is the last day of this one.
    next_year, next_month = shift_month(year, month, 1)
    return (dt.date(next_year, next_month, 1) - dt.timedelta(days=1)).day


def first_weekday(year: int, month: int) -> int:
    """Weekday of day 1, with 0=Sunday .. 6=Saturday."""
    return (dt.date(year, month, 1).weekday() + 1) % 7


def month_grid(year: int, month: int) -> list[DayCell]:
    """Build the day-cells for a month view.

    Leading blanks align day 1 under its column in a Monday-first week,
    followed by one cell per day of the month.

    Args:
        year: Four-digit year.
        month: Month number, 1 (January) to 12 (December).
    """
    if not 1 <= month <= 12:
        raise ValueError(f"Month out of range: {month}")
    weekday = first_weekday(year, month)
    blanks = 6 if weekday == 0 else weekday - 1
    cells = [DayCell() for _ in range(blanks)]
    cells.extend(
        DayCell(dt.date(year, month, day))
        for day in range(1, days_in_month(year, month) + 1)
    )
    return cells


def month_title(year: int, month: int) -> str:
    """Italian month caption, e.g. "maggio 2024"."""
    return f"{MONTH_NAMES[month - 1]} {year}"


def bucket_events(
    cells: Iterable[DayCell], events: Iterable[Event]
) -> dict[str, list[Event]]:
    """Map each day-cell key to the events whose date equals it exactly."""
    buckets: dict[str, list[Event]] = {
        cell.key: [] for cell in cells if cell.key is not None
    }
    for event in events:
        if event.date in buckets:
            buckets[event.date].append(event)
    return buckets
