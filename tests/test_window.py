from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from calgrid.models import DateWindow
from calgrid.window import (
    align_to_week,
    default_window,
    next_window,
    previous_window,
    query_bounds,
    shift_window,
    weekday_index,
    window_for,
)


def test_shift_window_is_inclusive():
    window = shift_window(date(2026, 2, 5), 3)

    assert window == DateWindow(date(2026, 2, 5), date(2026, 2, 7))
    assert window.length == 3
    assert window.days == [date(2026, 2, 5), date(2026, 2, 6), date(2026, 2, 7)]


def test_single_day_window():
    window = shift_window(date(2026, 2, 5), 1)

    assert window.start_date == window.end_date


def test_non_positive_lengths_are_rejected():
    with pytest.raises(ValueError):
        shift_window(date(2026, 2, 5), 0)


def test_window_cannot_end_before_it_starts():
    with pytest.raises(ValueError):
        DateWindow(date(2026, 2, 5), date(2026, 2, 4))


def test_default_window_is_today_plus_six():
    window = default_window(date(2026, 2, 5))

    assert window == DateWindow(date(2026, 2, 5), date(2026, 2, 11))


def test_week_view_snaps_to_first_weekday():
    thursday = date(2026, 2, 5)

    assert window_for(thursday, 7).start_date == date(2026, 2, 2)
    assert window_for(thursday, 7, first_weekday=weekday_index("sunday")).start_date == date(2026, 2, 1)
    assert window_for(thursday, 7, align_week=False).start_date == thursday


def test_shorter_views_start_on_the_current_day():
    thursday = date(2026, 2, 5)

    assert window_for(thursday, 3) == DateWindow(thursday, date(2026, 2, 7))
    assert window_for(thursday, 1) == DateWindow(thursday, thursday)


def test_align_to_week_keeps_first_weekday():
    monday = date(2026, 2, 2)

    assert align_to_week(monday) == monday


def test_paging_moves_by_window_length():
    window = shift_window(date(2026, 2, 5), 3)

    assert next_window(window) == DateWindow(date(2026, 2, 8), date(2026, 2, 10))
    assert previous_window(window) == DateWindow(date(2026, 2, 2), date(2026, 2, 4))


def test_unknown_weekday_is_rejected():
    with pytest.raises(ValueError):
        weekday_index("funday")


def test_query_bounds_cover_local_days_half_open():
    tz = ZoneInfo("America/Phoenix")

    lo, hi = query_bounds(DateWindow(date(2026, 2, 5), date(2026, 2, 6)), tz)

    # Phoenix is UTC-7 all year.
    assert lo == int(datetime(2026, 2, 5, 7, 0, tzinfo=timezone.utc).timestamp() * 1000)
    assert hi - lo == int(timedelta(days=2).total_seconds() * 1000)
