from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

import pytest

from calgrid.duration import DurationResolver, local_datetime, resolve_interval, to_epoch_ms
from calgrid.errors import CrossesMidnightError, DuplicateRecordError, InvalidIntervalError
from calgrid.models import SourceRecord, TimeInterval

TZ = ZoneInfo("America/Phoenix")
DAY = date(2026, 2, 5)


def _ms(hh: int, mm: int, day: date = DAY, tz: ZoneInfo = TZ) -> int:
    return to_epoch_ms(day, time(hh, mm), tz)


def test_missing_stop_defaults_to_one_hour():
    interval = resolve_interval(_ms(9, 15), None, TZ)

    assert interval == TimeInterval(day=DAY, start=time(9, 15), end=time(10, 15))


def test_explicit_stop_is_used_as_is():
    interval = resolve_interval(_ms(9, 0), _ms(9, 20), TZ)

    assert interval == TimeInterval(day=DAY, start=time(9, 0), end=time(9, 20))


def test_stop_equal_to_start_is_zero_length():
    interval = resolve_interval(_ms(9, 0), _ms(9, 0), TZ)

    assert interval.duration == timedelta(0)


def test_stop_before_start_is_invalid():
    with pytest.raises(InvalidIntervalError):
        resolve_interval(_ms(10, 0), _ms(9, 0), TZ)


def test_stop_on_a_later_day_crosses_midnight():
    with pytest.raises(CrossesMidnightError):
        resolve_interval(_ms(23, 0), _ms(1, 0, day=DAY + timedelta(days=1)), TZ)


def test_stop_at_next_midnight_is_end_of_day():
    interval = resolve_interval(_ms(23, 0), _ms(0, 0, day=DAY + timedelta(days=1)), TZ)

    assert interval.day == DAY
    assert interval.end == time.max


def test_default_duration_past_midnight_is_clipped():
    interval = resolve_interval(_ms(23, 30), None, TZ)

    assert interval.day == DAY
    assert interval.start == time(23, 30)
    assert interval.end == time.max


def test_default_duration_is_absolute_across_dst():
    berlin = ZoneInfo("Europe/Berlin")
    start = to_epoch_ms(date(2026, 3, 29), time(1, 30), berlin)

    interval = resolve_interval(start, None, berlin)

    # 01:30 CET + 1h lands at 03:30 CEST.
    assert interval.end == time(3, 30)


def test_epoch_conversion_round_trips_milliseconds():
    ms = _ms(14, 5) + 250

    dt = local_datetime(ms, TZ)

    assert dt == datetime(2026, 2, 5, 14, 5, 0, 250000, tzinfo=TZ)
    assert to_epoch_ms(dt.date(), dt.time(), TZ) == ms


def test_appointment_truncates_title_and_keeps_full_description():
    resolver = DurationResolver(TZ)
    record = SourceRecord(id="42", start_ms=_ms(8, 0), stop_ms=None, content="Dentist appointment downtown")

    appt = resolver.appointment(record)

    assert appt.id == "42"
    assert appt.title == "Dentist appo"
    assert appt.description == "Dentist appointment downtown"
    assert appt.source_record_ref == "42"
    assert appt.interval.end == time(9, 0)


def test_colour_comes_from_first_configured_category():
    resolver = DurationResolver(TZ, category_colors={"work": "#3366FF", "sport": "#FF9900"})

    assert resolver.color_for(["misc", "sport", "work"]) == "#FF9900"
    assert resolver.color_for(["misc"]) == "#FFFFFF"
    assert resolver.color_for([]) == "#FFFFFF"


def test_custom_title_budget_and_default_duration():
    resolver = DurationResolver(TZ, title_chars=4, default_duration=timedelta(minutes=30))
    record = SourceRecord(id="r", start_ms=_ms(7, 0), stop_ms=None, content="Breakfast")

    appt = resolver.appointment(record)

    assert appt.title == "Brea"
    assert appt.interval.end == time(7, 30)


def test_derive_skips_bad_records_and_reports_them():
    resolver = DurationResolver(TZ)
    good = SourceRecord(id="good", start_ms=_ms(9, 0), stop_ms=_ms(10, 0), content="ok")
    backwards = SourceRecord(id="bad", start_ms=_ms(10, 0), stop_ms=_ms(9, 0), content="oops")

    appointments, skipped = resolver.derive([good, backwards])

    assert [a.id for a in appointments] == ["good"]
    assert skipped[0][0] == "bad"
    assert isinstance(skipped[0][1], InvalidIntervalError)


NEW_YORK = ZoneInfo("America/New_York")
FALL_BACK = date(2024, 11, 3)
UTC = ZoneInfo("UTC")


def test_stop_in_the_repeated_hour_that_reads_earlier_is_invalid():
    # 05:30Z is 01:30 EDT; 06:10Z is 01:10 EST, forty minutes later.
    start = to_epoch_ms(FALL_BACK, time(5, 30), UTC)
    stop = to_epoch_ms(FALL_BACK, time(6, 10), UTC)

    with pytest.raises(InvalidIntervalError):
        resolve_interval(start, stop, NEW_YORK)


def test_short_default_duration_into_the_repeated_hour_is_invalid():
    start = to_epoch_ms(FALL_BACK, time(5, 50), UTC)

    with pytest.raises(InvalidIntervalError):
        resolve_interval(start, None, NEW_YORK, default_duration=timedelta(minutes=30))


def test_stop_later_on_the_clock_in_the_repeated_hour_is_kept():
    start = to_epoch_ms(FALL_BACK, time(5, 10), UTC)
    stop = to_epoch_ms(FALL_BACK, time(6, 40), UTC)

    interval = resolve_interval(start, stop, NEW_YORK)

    assert interval.start == time(1, 10)
    assert interval.end == time(1, 40)
    assert interval.end.fold == 1


def test_backwards_interval_cannot_be_constructed():
    with pytest.raises(InvalidIntervalError):
        TimeInterval(DAY, time(10, 0), time(9, 0))


def test_derive_reports_duplicate_record_ids():
    resolver = DurationResolver(TZ)
    first = SourceRecord(id="r", start_ms=_ms(9, 0), stop_ms=None, content="first")
    again = SourceRecord(id="r", start_ms=_ms(11, 0), stop_ms=None, content="again")

    appointments, skipped = resolver.derive([first, again])

    assert [a.description for a in appointments] == ["first"]
    assert skipped[0][0] == "r"
    assert isinstance(skipped[0][1], DuplicateRecordError)
