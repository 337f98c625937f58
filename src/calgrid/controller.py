from __future__ import annotations
import asyncio
import logging
from datetime import date
from enum import Enum
from typing import Callable, List, Optional, Protocol, Sequence, Set, Tuple

from .duration import DurationResolver
from .geometry import map_days
from .layout import TieBreak, by_id, layout_days
from .models import Appointment, DateWindow, SourceRecord, TimelineSnapshot
from .window import default_window, next_window, previous_window, shift_window

logger = logging.getLogger(__name__)

Subscriber = Callable[[TimelineSnapshot], None]


class RecordSource(Protocol):
    async def records_between(self, start_date: date, end_date: date) -> Sequence[SourceRecord]:
        ...


class WindowState(Enum):
    IDLE = "idle"
    REFRESHING = "refreshing"


class DateWindowController:
    """
    Owns the visible date window and the appointments derived for it.

    Every request bumps a version counter and starts a derivation task; a
    finished derivation is applied only if its version is still the latest,
    so results for superseded windows are dropped even when they arrive last.
    Stale tasks are not cancelled. Methods that start a derivation must be
    called from a running event loop.
    """

    def __init__(
        self,
        source: RecordSource,
        resolver: DurationResolver,
        day_width: float,
        hour_height: float,
        window: Optional[DateWindow] = None,
        tie_break: TieBreak = by_id,
    ) -> None:
        self._source = source
        self._resolver = resolver
        self._day_width = day_width
        self._hour_height = hour_height
        self._tie_break = tie_break

        self._window = window or default_window()
        self._selected_day: Optional[date] = None
        self._state = WindowState.IDLE
        self._version = 0

        self._appointments: Tuple[Appointment, ...] = ()
        self._skipped: Tuple[Tuple[str, Exception], ...] = ()
        self._error: Optional[Exception] = None

        self._subscribers: List[Subscriber] = []
        self._pending: Set[asyncio.Task] = set()

    @property
    def state(self) -> WindowState:
        return self._state

    @property
    def window(self) -> DateWindow:
        return self._window

    @property
    def version(self) -> int:
        return self._version

    @property
    def appointments(self) -> Tuple[Appointment, ...]:
        return self._appointments

    @property
    def selected_day(self) -> Optional[date]:
        return self._selected_day

    @property
    def visible_days(self) -> Tuple[date, ...]:
        if self._selected_day is not None:
            return (self._selected_day,)
        return tuple(self._window.days)

    def set_window(self, window: DateWindow) -> asyncio.Task:
        self._selected_day = None
        return self._request(window)

    def shift_window(self, start_date: date, number_of_days: int) -> asyncio.Task:
        return self.set_window(shift_window(start_date, number_of_days))

    def next_page(self) -> asyncio.Task:
        return self.set_window(next_window(self._window))

    def previous_page(self) -> asyncio.Task:
        return self.set_window(previous_window(self._window))

    def refresh(self) -> asyncio.Task:
        """Re-derive the current window, e.g. after the source changed."""
        return self._request(self._window)

    def select_day(self, day: Optional[date]) -> None:
        if day is not None and not self._window.contains(day):
            raise ValueError(f"{day.isoformat()} is outside {self._window.start_date}..{self._window.end_date}")
        if day == self._selected_day:
            return
        self._selected_day = day
        self._publish(self.snapshot())

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def wait_idle(self) -> None:
        while self._pending:
            await asyncio.gather(*list(self._pending))

    def snapshot(self) -> TimelineSnapshot:
        return self._compose(self._appointments, self._skipped, self._error)

    def _compose(
        self,
        appointments: Tuple[Appointment, ...],
        skipped: Tuple[Tuple[str, Exception], ...],
        error: Optional[Exception],
    ) -> TimelineSnapshot:
        days = self.visible_days
        layouts = layout_days(days, appointments, self._tie_break)
        return TimelineSnapshot(
            window=self._window,
            visible_days=days,
            appointments=appointments,
            layouts=layouts,
            geometry=map_days(layouts, appointments, self._day_width, self._hour_height),
            skipped=skipped,
            error=error,
        )

    def _request(self, window: DateWindow) -> asyncio.Task:
        loop = asyncio.get_running_loop()
        self._version += 1
        self._window = window
        self._state = WindowState.REFRESHING
        logger.debug("Requesting %s..%s (version %d)", window.start_date, window.end_date, self._version)

        task = loop.create_task(self._derive(self._version, window))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _derive(self, version: int, window: DateWindow) -> None:
        try:
            records = await self._source.records_between(window.start_date, window.end_date)
        except Exception as e:
            if version != self._version:
                logger.debug("Ignoring failure of superseded request (version %d)", version)
                return
            logger.warning("Source query for %s..%s failed: %s", window.start_date, window.end_date, e)
            self._fail(e)
            return

        if version != self._version:
            logger.debug("Dropping stale result for %s..%s (version %d)", window.start_date, window.end_date, version)
            return

        # Nothing is committed until the whole snapshot has been built.
        try:
            appointments, skipped = self._resolver.derive(records)
            snap = self._compose(tuple(appointments), tuple(skipped), None)
        except Exception as e:
            logger.warning("Deriving %s..%s failed: %s", window.start_date, window.end_date, e)
            self._fail(e)
            return

        self._appointments = snap.appointments
        self._skipped = snap.skipped
        self._error = None
        self._state = WindowState.IDLE
        self._publish(snap)

    def _fail(self, error: Exception) -> None:
        # The previous appointments stay; they were laid out once already.
        self._error = error
        self._state = WindowState.IDLE
        self._publish(self.snapshot())

    def _publish(self, snap: TimelineSnapshot) -> None:
        for callback in list(self._subscribers):
            try:
                callback(snap)
            except Exception:
                logger.exception("Subscriber %r failed", callback)
