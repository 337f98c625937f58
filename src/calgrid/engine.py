from __future__ import annotations

import asyncio
import os
from dataclasses import replace
from datetime import date
from typing import Callable, Optional

from dotenv import load_dotenv

from .config import EngineConfig, load_config, validate_config
from .controller import DateWindowController, RecordSource, Subscriber
from .duration import DurationResolver
from .layout import TieBreak, by_id, layout_day
from .models import Appointment, DateWindow, DayLayout, TimeInterval, TimelineSnapshot
from .mutation import EditResult, MutationCoordinator, RecordSink
from .window import local_today, shift_window, window_for

CONFIG_ENV = "CALGRID_CONFIG"
TIMEZONE_ENV = "CALGRID_TIMEZONE"


class TimelineEngine:
    """Wires resolver, controller and coordinator around one source/sink pair."""

    def __init__(
        self,
        config: EngineConfig,
        source: RecordSource,
        sink: RecordSink,
        today: Optional[date] = None,
        tie_break: TieBreak = by_id,
    ) -> None:
        self.config = config
        tz = config.tz
        self.resolver = DurationResolver(
            tz,
            title_chars=config.appointments.title_chars,
            default_duration=config.appointments.default_duration,
            default_color=config.appointments.default_color,
            category_colors=config.appointments.category_colors,
        )
        self.controller = DateWindowController(
            source,
            self.resolver,
            day_width=config.geometry.day_width,
            hour_height=config.geometry.slot_height,
            window=shift_window(today or local_today(tz), config.window.default_days),
            tie_break=tie_break,
        )
        self.coordinator = MutationCoordinator(sink, tz)
        self.tie_break = tie_break

        # Sources that announce their own changes get refreshed through that hook.
        add_listener = getattr(source, "add_listener", None)
        self._source_notifies = callable(add_listener)
        if self._source_notifies:
            add_listener(lambda _record_id: self.controller.refresh())

    @property
    def window(self) -> DateWindow:
        return self.controller.window

    def start(self) -> asyncio.Task:
        return self.controller.refresh()

    def set_window(self, window: DateWindow) -> asyncio.Task:
        return self.controller.set_window(window)

    def shift_window(self, start_date: date, number_of_days: int) -> asyncio.Task:
        return self.controller.shift_window(start_date, number_of_days)

    def show(self, current: date, number_of_days: int) -> asyncio.Task:
        """Switch view length (1/3/7 days...), snapping week views to the first weekday."""
        return self.controller.set_window(
            window_for(
                current,
                number_of_days,
                align_week=self.config.window.align_week,
                first_weekday=self.config.window.first_weekday_index,
            )
        )

    def next_page(self) -> asyncio.Task:
        return self.controller.next_page()

    def previous_page(self) -> asyncio.Task:
        return self.controller.previous_page()

    def select_day(self, day: Optional[date]) -> None:
        self.controller.select_day(day)

    def layout(self, day: date) -> DayLayout:
        return layout_day(day, self.controller.appointments, self.tie_break)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        return self.controller.subscribe(callback)

    def snapshot(self) -> TimelineSnapshot:
        return self.controller.snapshot()

    async def wait_idle(self) -> None:
        await self.controller.wait_idle()

    async def apply_edit(self, appointment: Appointment, new_interval: TimeInterval) -> EditResult:
        result = await self.coordinator.apply_edit(appointment, new_interval)
        if result.ok and not self._source_notifies:
            self.controller.refresh()
        return result


def build_engine(
    source: RecordSource,
    sink: RecordSink,
    config_path: Optional[str] = None,
    today: Optional[date] = None,
) -> TimelineEngine:
    load_dotenv()
    cfg = load_config(config_path or os.environ.get(CONFIG_ENV))
    tz_override = os.environ.get(TIMEZONE_ENV, "")
    if tz_override:
        cfg = replace(cfg, timezone=tz_override)
        validate_config(cfg)
    return TimelineEngine(cfg, source, sink, today=today)
