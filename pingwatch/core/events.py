"""
Disruption events and the shared log that owns them.

An event is created when a Down target answers again. While that target stays
Up the event keeps tracking the live session statistics; the next Down closes
it for good.
"""

import dataclasses
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterator, List, Optional

from loguru import logger

from pingwatch.core.statistics import StatsSnapshot
from pingwatch.core.types import EventSortField, SortDirection


def format_duration(delta: timedelta) -> str:
    """Render a duration as HH:MM:SS (hours are not wrapped at 24)."""
    total = max(0, int(delta.total_seconds()))
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


@dataclass
class DisruptionEvent:
    """One Down -> Up episode of a single target."""

    address: str
    host: str
    down_start: datetime
    recovery_time: datetime
    failure_count: int
    pre_down: StatsSnapshot = field(default_factory=StatsSnapshot)
    post_recovery: StatsSnapshot = field(default_factory=StatsSnapshot)

    @property
    def duration(self) -> timedelta:
        return self.recovery_time - self.down_start

    @property
    def duration_text(self) -> str:
        return format_duration(self.duration)

    def snapshot(self) -> "DisruptionEvent":
        """Detached copy safe to hand to subscribers."""
        return dataclasses.replace(self)


_SORT_KEYS: Dict[EventSortField, Callable[[DisruptionEvent], object]] = {
    EventSortField.ADDRESS: lambda e: e.address,
    EventSortField.HOST: lambda e: e.host,
    EventSortField.DOWN_START: lambda e: e.down_start,
    EventSortField.RECOVERY_TIME: lambda e: e.recovery_time,
    EventSortField.FAILURE_COUNT: lambda e: e.failure_count,
    EventSortField.DURATION: lambda e: e.duration,
    EventSortField.PRE_DOWN_AVG: lambda e: e.pre_down.avg,
    EventSortField.POST_RECOVERY_AVG: lambda e: e.post_recovery.avg,
}


class DisruptionEventLog:
    """
    Append-only collection of disruption events across all targets.

    Insertion order is creation order. Sorting produces a new list and never
    reorders the log itself. Thread-safe.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._events: List[DisruptionEvent] = []
        self._sort_field: Optional[EventSortField] = None
        self._sort_direction = SortDirection.ASCENDING

    def append(self, event: DisruptionEvent) -> None:
        with self._lock:
            self._events.append(event)
            count = len(self._events)
        logger.debug(f"[DisruptionEventLog] Recorded {event.address} ({count} total)")

    def clear(self) -> None:
        """Bulk reset: drop every event and forget the sort state."""
        with self._lock:
            self._events.clear()
            self._sort_field = None
            self._sort_direction = SortDirection.ASCENDING

    def snapshot(self) -> List[DisruptionEvent]:
        """Events in creation order."""
        with self._lock:
            return list(self._events)

    def __iter__(self) -> Iterator[DisruptionEvent]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    @property
    def sort_field(self) -> Optional[EventSortField]:
        return self._sort_field

    @property
    def sort_direction(self) -> SortDirection:
        return self._sort_direction

    def sort_by(
        self,
        sort_field: EventSortField,
        direction: Optional[SortDirection] = None,
    ) -> List[DisruptionEvent]:
        """
        Return the events ordered by one column.

        Args:
            sort_field: Column to order by
            direction: Explicit direction. When omitted, sorting again on the
                same column toggles the direction and a new column starts
                ascending.

        Returns:
            New list; equal keys keep creation order
        """
        key = _SORT_KEYS[sort_field]
        with self._lock:
            if direction is None:
                if sort_field == self._sort_field:
                    direction = self._sort_direction.toggled()
                else:
                    direction = SortDirection.ASCENDING
            self._sort_field = sort_field
            self._sort_direction = direction
            events = list(self._events)

        return sorted(events, key=key, reverse=direction is SortDirection.DESCENDING)
