from __future__ import annotations
from datetime import date, time
from typing import Dict, Iterable, List, Sequence, Tuple

from .models import Appointment, AppointmentRect, DayLayout


def seconds_since_midnight(t: time) -> float:
    seconds = t.hour * 3600 + t.minute * 60 + t.second
    if t.microsecond:
        return seconds + t.microsecond / 1_000_000
    return seconds


def map_day(
    day_layout: DayLayout,
    appointments: Iterable[Appointment],
    day_width: float,
    hour_height: float,
) -> List[AppointmentRect]:
    """
    Turn one day's column assignment into rectangles.

    Width is ``day_width / total_columns`` for every appointment of the day;
    vertical placement is proportional to time-of-day. Zero-length intervals
    come back with ``height == 0``. A day with no columns yields nothing.
    The numeric type of ``day_width`` is preserved (pass a Fraction for exact
    widths).
    """
    if day_width <= 0 or hour_height <= 0:
        raise ValueError("day_width and hour_height must be positive")
    if day_layout.total_columns == 0:
        return []

    by_id: Dict[str, Appointment] = {a.id: a for a in appointments if a.interval.day == day_layout.day}
    width = day_width / day_layout.total_columns

    rects: List[AppointmentRect] = []
    for assignment in day_layout.assignments:
        interval = by_id[assignment.appointment_id].interval
        start_s = seconds_since_midnight(interval.start)
        duration_s = seconds_since_midnight(interval.end) - start_s
        rects.append(
            AppointmentRect(
                appointment_id=assignment.appointment_id,
                offset_x=assignment.column * width,
                width=width,
                offset_y=start_s / 3600 * hour_height,
                height=duration_s / 3600 * hour_height,
            )
        )
    return rects


def map_days(
    layouts: Sequence[DayLayout],
    appointments: Iterable[Appointment],
    day_width: float,
    hour_height: float,
) -> Dict[date, Tuple[AppointmentRect, ...]]:
    pool = list(appointments)
    out: Dict[date, Tuple[AppointmentRect, ...]] = {}
    for day_layout in layouts:
        out[day_layout.day] = tuple(map_day(day_layout, pool, day_width, hour_height))
    return out
