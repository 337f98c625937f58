from __future__ import annotations
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, Iterable, List, Mapping, Optional, Tuple
from zoneinfo import ZoneInfo

from .errors import CrossesMidnightError, DuplicateRecordError, InvalidIntervalError, TimelineError
from .models import DEFAULT_COLOR, Appointment, SourceRecord, TimeInterval

logger = logging.getLogger(__name__)

DEFAULT_DURATION = timedelta(hours=1)
TITLE_CHARS = 12
END_OF_DAY = time.max

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MS = timedelta(milliseconds=1)


def local_datetime(ms: int, tz: ZoneInfo) -> datetime:
    dt = datetime.fromtimestamp(ms // 1000, tz=tz)
    return dt.replace(microsecond=(ms % 1000) * 1000)


def to_epoch_ms(day: date, t: time, tz: ZoneInfo) -> int:
    return (datetime.combine(day, t, tzinfo=tz) - _EPOCH) // _MS


def resolve_interval(
    start_ms: int,
    stop_ms: Optional[int],
    tz: ZoneInfo,
    default_duration: timedelta = DEFAULT_DURATION,
) -> TimeInterval:
    """
    Turn a record's start/stop timestamps into a single-day interval.

      - stop present: end = stop; stop before start raises InvalidIntervalError,
        as does a stop that reads earlier on the local clock (DST fall-back),
        stop on a later day raises CrossesMidnightError (a stop exactly at the
        next midnight is read as end of day)
      - stop absent: end = start + default_duration, clipped to end of day
    """
    start = local_datetime(start_ms, tz)

    if stop_ms is not None:
        if stop_ms < start_ms:
            raise InvalidIntervalError(f"stop {stop_ms} is before start {start_ms}")
        stop = local_datetime(stop_ms, tz)
        if stop.date() == start.date():
            if stop.time() < start.time():
                # Fall-back repeats an hour: later in absolute time, earlier on the clock.
                raise InvalidIntervalError(
                    f"stop {stop.isoformat()} reads earlier than start {start.isoformat()} on the local clock"
                )
            return TimeInterval(day=start.date(), start=start.time(), end=stop.time())
        if stop.date() == start.date() + timedelta(days=1) and stop.time() == time(0, 0):
            return TimeInterval(day=start.date(), start=start.time(), end=END_OF_DAY)
        raise CrossesMidnightError(f"stop {stop.isoformat()} is not on {start.date().isoformat()}")

    # Absolute offset, so a DST switch inside the hour is respected.
    end = local_datetime(start_ms + default_duration // _MS, tz)
    end_time = end.time() if end.date() == start.date() else END_OF_DAY
    if end_time < start.time():
        raise InvalidIntervalError(
            f"default end {end.isoformat()} reads earlier than start {start.isoformat()} on the local clock"
        )
    return TimeInterval(day=start.date(), start=start.time(), end=end_time)


class DurationResolver:
    """Maps source records to appointments using the configured fallbacks."""

    def __init__(
        self,
        tz: ZoneInfo,
        title_chars: int = TITLE_CHARS,
        default_duration: timedelta = DEFAULT_DURATION,
        default_color: str = DEFAULT_COLOR,
        category_colors: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.tz = tz
        self.title_chars = title_chars
        self.default_duration = default_duration
        self.default_color = default_color
        self.category_colors: Dict[str, str] = dict(category_colors or {})

    def interval(self, start_ms: int, stop_ms: Optional[int]) -> TimeInterval:
        return resolve_interval(start_ms, stop_ms, self.tz, self.default_duration)

    def color_for(self, categories: Iterable[str]) -> str:
        for name in categories:
            color = self.category_colors.get(name)
            if color:
                return color
        return self.default_color

    def appointment(self, record: SourceRecord) -> Appointment:
        return Appointment(
            id=record.id,
            interval=self.interval(record.start_ms, record.stop_ms),
            title=record.content[: self.title_chars],
            description=record.content,
            color_tag=self.color_for(record.categories),
            source_record_ref=record.id,
        )

    def derive(self, records: Iterable[SourceRecord]) -> Tuple[List[Appointment], List[Tuple[str, TimelineError]]]:
        appointments: List[Appointment] = []
        skipped: List[Tuple[str, TimelineError]] = []
        seen = set()
        for record in records:
            try:
                if record.id in seen:
                    raise DuplicateRecordError(f"record {record.id} returned more than once")
                appointments.append(self.appointment(record))
                seen.add(record.id)
            except TimelineError as e:
                logger.warning("Skipping record %s: %s", record.id, e)
                skipped.append((record.id, e))
        return appointments, skipped
