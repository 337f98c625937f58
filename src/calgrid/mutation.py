from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import time, timedelta
from typing import Optional, Protocol
from zoneinfo import ZoneInfo

from .duration import END_OF_DAY, to_epoch_ms
from .errors import CrossesMidnightError, InvalidIntervalError, TimelineError
from .models import Appointment, TimeInterval, UpdateRequest

logger = logging.getLogger(__name__)

UPDATED = "updated"
NOT_PERSISTED = "not_persisted"
FAILED = "failed"


class RecordSink(Protocol):
    async def update_record(self, request: UpdateRequest) -> None:
        """Replace the record's start/stop; raise NotFoundError if it is gone."""
        ...


@dataclass(frozen=True)
class EditResult:
    status: str                 # "updated" / "not_persisted" / "failed"
    appointment_id: str
    request: Optional[UpdateRequest] = None
    error: Optional[Exception] = None   # TimelineError, or whatever the sink raised

    @property
    def ok(self) -> bool:
        return self.status == UPDATED


class MutationCoordinator:
    """Writes edited appointment times back to their source records."""

    def __init__(self, sink: RecordSink, tz: ZoneInfo) -> None:
        self.sink = sink
        self.tz = tz

    def build_request(self, appointment: Appointment, new_interval: TimeInterval) -> UpdateRequest:
        if appointment.source_record_ref is None:
            raise ValueError(f"appointment {appointment.id} has no backing record")
        if new_interval.day != appointment.day:
            raise CrossesMidnightError(
                f"edit would move {appointment.id} from {appointment.day.isoformat()} to {new_interval.day.isoformat()}"
            )

        # The day always comes from the original appointment.
        day = appointment.day
        start_ms = to_epoch_ms(day, new_interval.start, self.tz)
        if new_interval.end == END_OF_DAY:
            stop_ms = to_epoch_ms(day + timedelta(days=1), time(0, 0), self.tz)
        else:
            stop_ms = to_epoch_ms(day, new_interval.end, self.tz)
        if stop_ms < start_ms:
            # Possible inside a DST fall-back hour, where fold decides the instant.
            raise InvalidIntervalError(f"{new_interval.end} is before {new_interval.start} in absolute time")
        return UpdateRequest(record_id=appointment.source_record_ref, start_ms=start_ms, stop_ms=stop_ms)

    async def apply_edit(self, appointment: Appointment, new_interval: TimeInterval) -> EditResult:
        if appointment.source_record_ref is None:
            logger.debug("Appointment %s is display-only; edit not persisted", appointment.id)
            return EditResult(status=NOT_PERSISTED, appointment_id=appointment.id)

        try:
            request = self.build_request(appointment, new_interval)
        except TimelineError as e:
            logger.warning("Edit of %s rejected: %s", appointment.id, e)
            return EditResult(status=FAILED, appointment_id=appointment.id, error=e)

        try:
            await self.sink.update_record(request)
        except Exception as e:
            logger.warning("Writing %s to record %s failed: %s", appointment.id, request.record_id, e)
            return EditResult(status=FAILED, appointment_id=appointment.id, request=request, error=e)

        return EditResult(status=UPDATED, appointment_id=appointment.id, request=request)
