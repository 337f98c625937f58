from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, time, timedelta
from typing import Dict, List, Optional, Tuple

from .errors import InvalidIntervalError

DEFAULT_COLOR = "#FFFFFF"


@dataclass(frozen=True)
class TimeInterval:
    day: date
    start: time                 # local time-of-day, naive
    end: time                   # same day as start; 24:00 is time.max

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise InvalidIntervalError(f"{self.day.isoformat()}: {self.end} is before {self.start}")

    @property
    def duration(self) -> timedelta:
        return _as_delta(self.end) - _as_delta(self.start)


@dataclass(frozen=True)
class Appointment:
    id: str
    interval: TimeInterval
    title: str
    description: Optional[str] = None
    color_tag: str = DEFAULT_COLOR
    source_record_ref: Optional[str] = None   # None = display-only, never written back

    @property
    def day(self) -> date:
        return self.interval.day


@dataclass(frozen=True)
class SourceRecord:
    id: str
    start_ms: int               # epoch milliseconds
    stop_ms: Optional[int]
    content: str
    categories: Tuple[str, ...] = ()


@dataclass(frozen=True)
class UpdateRequest:
    record_id: str
    start_ms: int
    stop_ms: int


@dataclass(frozen=True)
class OverlapAssignment:
    appointment_id: str
    column: int


@dataclass(frozen=True)
class DayLayout:
    day: date
    assignments: Tuple[OverlapAssignment, ...]
    total_columns: int          # per day, not per overlap cluster

    def column_of(self, appointment_id: str) -> Optional[int]:
        for a in self.assignments:
            if a.appointment_id == appointment_id:
                return a.column
        return None


@dataclass(frozen=True)
class AppointmentRect:
    appointment_id: str
    offset_x: float
    width: float
    offset_y: float
    height: float


@dataclass(frozen=True)
class DateWindow:
    start_date: date
    end_date: date              # inclusive

    def __post_init__(self) -> None:
        if self.end_date < self.start_date:
            raise ValueError(f"window ends before it starts: {self.start_date} > {self.end_date}")

    @property
    def length(self) -> int:
        return (self.end_date - self.start_date).days + 1

    @property
    def days(self) -> List[date]:
        return [self.start_date + timedelta(days=i) for i in range(self.length)]

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


@dataclass(frozen=True)
class TimelineSnapshot:
    window: DateWindow
    visible_days: Tuple[date, ...]
    appointments: Tuple[Appointment, ...]
    layouts: Tuple[DayLayout, ...]
    geometry: Dict[date, Tuple[AppointmentRect, ...]] = field(default_factory=dict)
    skipped: Tuple[Tuple[str, Exception], ...] = ()
    error: Optional[Exception] = None


def _as_delta(t: time) -> timedelta:
    return timedelta(hours=t.hour, minutes=t.minute, seconds=t.second, microseconds=t.microsecond)
