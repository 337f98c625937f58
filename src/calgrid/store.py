from __future__ import annotations
from dataclasses import replace
from datetime import date
from typing import Callable, Dict, Iterable, List, Optional
from zoneinfo import ZoneInfo

from .errors import NotFoundError
from .models import DateWindow, SourceRecord, UpdateRequest
from .window import query_bounds

ChangeListener = Callable[[str], None]


class InMemoryRecordStore:
    """Record source and update sink backed by a dict, keyed by record id.

    Listeners are called with the record id after every change; when a
    listener starts controller work, mutate the store from inside the loop.
    """

    def __init__(self, tz: ZoneInfo, records: Iterable[SourceRecord] = ()) -> None:
        self.tz = tz
        self._records: Dict[str, SourceRecord] = {r.id: r for r in records}
        self._listeners: List[ChangeListener] = []

    def __len__(self) -> int:
        return len(self._records)

    def get(self, record_id: str) -> Optional[SourceRecord]:
        return self._records.get(record_id)

    def put(self, record: SourceRecord) -> None:
        self._records[record.id] = record
        self._notify(record.id)

    def remove(self, record_id: str) -> None:
        if self._records.pop(record_id, None) is not None:
            self._notify(record_id)

    def add_listener(self, listener: ChangeListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    async def records_between(self, start_date: date, end_date: date) -> List[SourceRecord]:
        lo, hi = query_bounds(DateWindow(start_date, end_date), self.tz)
        hits = [r for r in self._records.values() if lo <= r.start_ms < hi]
        return sorted(hits, key=lambda r: (r.start_ms, r.id))

    async def update_record(self, request: UpdateRequest) -> None:
        current = self._records.get(request.record_id)
        if current is None:
            raise NotFoundError(f"record {request.record_id} not found")
        self._records[request.record_id] = replace(current, start_ms=request.start_ms, stop_ms=request.stop_ms)
        self._notify(request.record_id)

    def _notify(self, record_id: str) -> None:
        for listener in list(self._listeners):
            listener(record_id)
