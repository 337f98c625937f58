from __future__ import annotations
from datetime import date, datetime, time, timedelta
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from .duration import to_epoch_ms
from .models import DateWindow

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
DEFAULT_DAYS = 7


def weekday_index(name: str) -> int:
    try:
        return WEEKDAYS.index(name.strip().lower())
    except ValueError:
        raise ValueError(f"unknown weekday: {name!r}") from None


def shift_window(start_date: date, number_of_days: int) -> DateWindow:
    if number_of_days < 1:
        raise ValueError(f"number_of_days must be positive, got {number_of_days}")
    return DateWindow(start_date=start_date, end_date=start_date + timedelta(days=number_of_days - 1))


def default_window(today: Optional[date] = None) -> DateWindow:
    return shift_window(today or date.today(), DEFAULT_DAYS)


def align_to_week(day: date, first_weekday: int = 0) -> date:
    return day - timedelta(days=(day.weekday() - first_weekday) % 7)


def window_for(
    current: date,
    number_of_days: int,
    align_week: bool = True,
    first_weekday: int = 0,
) -> DateWindow:
    # Only the 7-day view snaps to the start of the week.
    start = align_to_week(current, first_weekday) if (align_week and number_of_days == 7) else current
    return shift_window(start, number_of_days)


def next_window(window: DateWindow) -> DateWindow:
    return shift_window(window.start_date + timedelta(days=window.length), window.length)


def previous_window(window: DateWindow) -> DateWindow:
    return shift_window(window.start_date - timedelta(days=window.length), window.length)


def query_bounds(window: DateWindow, tz: ZoneInfo) -> Tuple[int, int]:
    """Half-open epoch-ms range from local midnight of start to local midnight after end."""
    return (
        to_epoch_ms(window.start_date, time(0, 0), tz),
        to_epoch_ms(window.end_date + timedelta(days=1), time(0, 0), tz),
    )


def local_today(tz: ZoneInfo) -> date:
    return datetime.now(tz=tz).date()
