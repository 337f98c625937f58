from __future__ import annotations
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from .errors import ConfigError
from .models import DEFAULT_COLOR
from .window import weekday_index


@dataclass
class WindowConfig:
    default_days: int = 7
    align_week: bool = True
    first_weekday: str = "monday"

    @property
    def first_weekday_index(self) -> int:
        return weekday_index(self.first_weekday)


@dataclass
class AppointmentsConfig:
    title_chars: int = 12
    default_duration_minutes: int = 60
    default_color: str = DEFAULT_COLOR
    category_colors: Dict[str, str] = field(default_factory=dict)

    @property
    def default_duration(self) -> timedelta:
        return timedelta(minutes=self.default_duration_minutes)


@dataclass
class GeometryConfig:
    day_width: float = 100.0
    hour_height: float = 60.0
    hour_divider: float = 0.0

    @property
    def slot_height(self) -> float:
        return self.hour_height + self.hour_divider


@dataclass
class EngineConfig:
    timezone: str = "UTC"
    window: WindowConfig = field(default_factory=WindowConfig)
    appointments: AppointmentsConfig = field(default_factory=AppointmentsConfig)
    geometry: GeometryConfig = field(default_factory=GeometryConfig)

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def load_config(path: Optional[str] = None) -> EngineConfig:
    data: Dict[str, Any] = {}
    if path:
        p = Path(path)
        if p.exists():
            data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}

    window = data.get("window", {}) or {}
    appointments = data.get("appointments", {}) or {}
    geometry = data.get("geometry", {}) or {}

    cfg = EngineConfig(
        timezone=str(data.get("timezone", "UTC")),
        window=WindowConfig(
            default_days=int(window.get("default_days", 7)),
            align_week=bool(window.get("align_week", True)),
            first_weekday=str(window.get("first_weekday", "monday")),
        ),
        appointments=AppointmentsConfig(
            title_chars=int(appointments.get("title_chars", 12)),
            default_duration_minutes=int(appointments.get("default_duration_minutes", 60)),
            default_color=str(appointments.get("default_color", DEFAULT_COLOR)),
            category_colors={str(k): str(v) for k, v in (appointments.get("category_colors") or {}).items()},
        ),
        geometry=GeometryConfig(
            day_width=float(geometry.get("day_width", 100.0)),
            hour_height=float(geometry.get("hour_height", 60.0)),
            hour_divider=float(geometry.get("hour_divider", 0.0)),
        ),
    )
    validate_config(cfg)
    return cfg


def validate_config(cfg: EngineConfig) -> None:
    try:
        cfg.tz
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigError(f"unknown timezone {cfg.timezone!r}") from e
    try:
        cfg.window.first_weekday_index
    except ValueError as e:
        raise ConfigError(str(e)) from e

    if cfg.window.default_days < 1:
        raise ConfigError("window.default_days must be positive")
    if cfg.appointments.title_chars < 1:
        raise ConfigError("appointments.title_chars must be positive")
    if cfg.appointments.default_duration_minutes < 1:
        raise ConfigError("appointments.default_duration_minutes must be positive")
    if cfg.geometry.day_width <= 0 or cfg.geometry.hour_height <= 0:
        raise ConfigError("geometry.day_width and geometry.hour_height must be positive")
    if cfg.geometry.hour_divider < 0:
        raise ConfigError("geometry.hour_divider must not be negative")
