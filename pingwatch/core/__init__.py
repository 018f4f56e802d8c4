"""Core functionality for pingwatch."""

from pingwatch.core.config import Config
from pingwatch.core.events import DisruptionEvent, DisruptionEventLog
from pingwatch.core.statistics import StatisticsAccumulator, StatsSnapshot
from pingwatch.core.target import MonitorTarget, TargetSnapshot

__all__ = [
    "Config",
    "DisruptionEvent",
    "DisruptionEventLog",
    "MonitorTarget",
    "StatisticsAccumulator",
    "StatsSnapshot",
    "TargetSnapshot",
]
