from __future__ import annotations
from datetime import date
from typing import Any, Callable, Iterable, List, Sequence, Tuple

from .models import Appointment, DayLayout, OverlapAssignment, TimeInterval

TieBreak = Callable[[Appointment], Any]


def by_id(appointment: Appointment) -> Any:
    return appointment.id


def overlaps(a: TimeInterval, b: TimeInterval) -> bool:
    # Touching endpoints count as overlapping.
    return not (a.end < b.start or b.end < a.start)


def _sort_key(tie_break: TieBreak):
    def key(a: Appointment):
        return (a.interval.start, tie_break(a))
    return key


def layout_day(day: date, appointments: Iterable[Appointment], tie_break: TieBreak = by_id) -> DayLayout:
    """
    Greedy column packing for one day.

    Appointments are taken in (start, tie_break) order and dropped into the
    first column holding nothing they overlap; a new column is opened when
    none fits. ``total_columns`` is the column count for the whole day, so an
    appointment with no neighbours still shares the day width with the rest.
    The result is deterministic, not minimal.
    """
    daily = [a for a in appointments if a.interval.day == day]
    if not daily:
        return DayLayout(day=day, assignments=(), total_columns=0)

    seen = set()
    for a in daily:
        if a.id in seen:
            raise ValueError(f"duplicate appointment id {a.id!r} on {day.isoformat()}")
        seen.add(a.id)

    columns: List[List[TimeInterval]] = []
    assignments: List[OverlapAssignment] = []
    for appointment in sorted(daily, key=_sort_key(tie_break)):
        for index, column in enumerate(columns):
            if not any(overlaps(appointment.interval, placed) for placed in column):
                column.append(appointment.interval)
                break
        else:
            index = len(columns)
            columns.append([appointment.interval])
        assignments.append(OverlapAssignment(appointment_id=appointment.id, column=index))

    return DayLayout(day=day, assignments=tuple(assignments), total_columns=len(columns))


def layout_days(
    days: Sequence[date],
    appointments: Iterable[Appointment],
    tie_break: TieBreak = by_id,
) -> Tuple[DayLayout, ...]:
    pool = list(appointments)
    return tuple(layout_day(d, pool, tie_break) for d in days)
