"""Core types and enums."""
from enum import Enum


class TargetStatus(Enum):
    """Reachability state of a monitored target."""

    UNKNOWN = "unknown"
    UP = "up"
    DOWN = "down"

    def __str__(self):
        return self.value


class SessionState(Enum):
    """Lifecycle of a monitoring session."""

    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"

    def __str__(self):
        return self.value


class SortDirection(Enum):
    """Sort direction for the disruption log."""

    ASCENDING = "asc"
    DESCENDING = "desc"

    def toggled(self) -> "SortDirection":
        if self is SortDirection.ASCENDING:
            return SortDirection.DESCENDING
        return SortDirection.ASCENDING


class EventSortField(Enum):
    """Columns of the disruption log that can be sorted on."""

    ADDRESS = "address"
    HOST = "host"
    DOWN_START = "down_start"
    RECOVERY_TIME = "recovery_time"
    FAILURE_COUNT = "failure_count"
    DURATION = "duration"
    PRE_DOWN_AVG = "pre_down_avg"
    POST_RECOVERY_AVG = "post_recovery_avg"
