"""
Signals - Facts emitted by the monitoring core.

The core never touches presentation state. It publishes immutable snapshots
through a SignalBus; each consumer keeps its own view model.

Payloads per signal:
- TARGET_UPDATED: TargetSnapshot
- DISRUPTION_CREATED / DISRUPTION_UPDATED: DisruptionEvent (detached copy)
- SESSION_STATE_CHANGED: SessionState
- TRACE_OUTPUT: (address, line)
- TRACE_COMPLETED / TRACE_STOPPED: address
"""

import threading
from enum import Enum, auto
from typing import Any, Callable, List

from loguru import logger


class MonitorSignal(Enum):
    """Signals emitted by the monitoring and trace services."""

    TARGET_UPDATED = auto()
    DISRUPTION_CREATED = auto()
    DISRUPTION_UPDATED = auto()
    SESSION_STATE_CHANGED = auto()
    TRACE_OUTPUT = auto()
    TRACE_COMPLETED = auto()
    TRACE_STOPPED = auto()


SignalCallback = Callable[[MonitorSignal, Any], None]


class SignalBus:
    """Fan-out of signals to subscribers. Thread-safe."""

    def __init__(self):
        self._lock = threading.Lock()
        self._callbacks: List[SignalCallback] = []

    def subscribe(self, callback: SignalCallback) -> None:
        with self._lock:
            if callback not in self._callbacks:
                self._callbacks.append(callback)

    def unsubscribe(self, callback: SignalCallback) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def emit(self, signal: MonitorSignal, payload: Any = None) -> None:
        """Deliver to every subscriber; a failing subscriber is logged and skipped."""
        with self._lock:
            callbacks = list(self._callbacks)

        for callback in callbacks:
            try:
                callback(signal, payload)
            except Exception as e:
                logger.error(f"[SignalBus] Subscriber failed on {signal.name}: {e}")
