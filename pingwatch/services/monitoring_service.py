"""
Monitoring Service - Owns a monitoring session and its probe tasks.

Architecture:
- One ProbeLoop task per target, keyed by target identity
- Targets share nothing except the DisruptionEventLog
- State changes and per-probe snapshots go out through the SignalBus
- SessionState is the single source of truth for Idle/Running/Stopped
"""

import asyncio
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from loguru import logger

from pingwatch.core.constants import DEFAULT_INTERVAL_MS, DEFAULT_TIMEOUT_MS
from pingwatch.core.events import DisruptionEvent, DisruptionEventLog
from pingwatch.core.signals import MonitorSignal, SignalBus
from pingwatch.core.target import MonitorTarget
from pingwatch.core.types import SessionState
from pingwatch.core.validators import (
    NoTargetsError,
    ValidationError,
    validate_interval,
    validate_timeout,
)
from pingwatch.services.probe_loop import ProbeLoop, Prober


class MonitoringService:
    """
    Start/stop/reset surface for continuous reachability monitoring.

    Every start resets all target statistics and clears the disruption log,
    so a report always covers exactly one run.
    """

    def __init__(
        self,
        prober: Optional[Prober] = None,
        event_log: Optional[DisruptionEventLog] = None,
        signals: Optional[SignalBus] = None,
    ):
        """
        Args:
            prober: Echo sender shared by all probe loops (defaults to IcmpProber)
            event_log: Disruption log to record into
            signals: Bus for snapshots and events
        """
        if prober is None:
            from pingwatch.services.prober import IcmpProber

            prober = IcmpProber()

        self._prober = prober
        self.event_log = event_log or DisruptionEventLog()
        self.signals = signals or SignalBus()

        self._targets: List[MonitorTarget] = []
        self._tasks: Dict[str, asyncio.Task] = {}
        self._state = SessionState.IDLE
        self._session_id = 0
        self._cancellation: Optional[asyncio.Event] = None

        self.interval_ms = DEFAULT_INTERVAL_MS
        self.timeout_ms = DEFAULT_TIMEOUT_MS
        self.started_at: Optional[datetime] = None
        self.ended_at: Optional[datetime] = None

    # --- Queries ---

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == SessionState.RUNNING

    @property
    def session_id(self) -> int:
        return self._session_id

    @property
    def targets(self) -> List[MonitorTarget]:
        return list(self._targets)

    @property
    def cancellation(self) -> Optional[asyncio.Event]:
        """Set when the current session stops; lets a trace run follow it."""
        return self._cancellation

    def trace_addresses(self) -> List[str]:
        """Addresses of targets flagged for path tracing."""
        return [t.address for t in self._targets if t.trace_selected and t.address]

    # --- Commands ---

    def set_targets(self, targets: Iterable[MonitorTarget]) -> None:
        """Replace the target set. Not allowed while running."""
        if self.is_running:
            raise RuntimeError("Cannot change targets while monitoring is running")

        targets = list(targets)
        sequences = [t.sequence for t in targets]
        if len(sequences) != len(set(sequences)):
            raise ValidationError("Target sequence numbers must be unique")
        self._targets = targets

    async def start(
        self,
        targets: Optional[Iterable[MonitorTarget]] = None,
        interval_ms: int = DEFAULT_INTERVAL_MS,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ) -> int:
        """
        Start a new monitoring session.

        Args:
            targets: New target set, or None to reuse the current one
            interval_ms: Pause between two probes of one target
            timeout_ms: Per-probe timeout

        Returns:
            The new session ID

        Raises:
            NoTargetsError: No target has an address
            ValidationError: Invalid interval or timeout
        """
        validate_interval(interval_ms)
        validate_timeout(timeout_ms)

        if self.is_running:
            await self.stop()

        if targets is not None:
            self.set_targets(targets)

        active = [t for t in self._targets if t.address and t.sequence > 0]
        if not active:
            raise NoTargetsError("No targets with an address to monitor")

        for target in self._targets:
            target.reset()
        self.event_log.clear()

        self.interval_ms = interval_ms
        self.timeout_ms = timeout_ms
        self._session_id += 1
        self._cancellation = asyncio.Event()

        for target in active:
            target.interval_ms = interval_ms
            target.timeout_ms = timeout_ms
            loop = ProbeLoop(target, self._prober, on_outcome=self._on_outcome)
            self._tasks[target.key] = asyncio.create_task(loop.run(), name=f"probe:{target.key}")

        self.started_at = datetime.now()
        self.ended_at = None
        self._set_state(SessionState.RUNNING)

        logger.info(
            f"[MonitoringService] Started session {self._session_id} "
            f"({len(active)} targets, interval={interval_ms}ms, timeout={timeout_ms}ms)"
        )
        return self._session_id

    async def stop(self) -> None:
        """Cancel every probe loop and wait for all of them to finish."""
        if not self.is_running:
            return

        tasks = list(self._tasks.values())
        self._tasks.clear()
        if self._cancellation is not None:
            self._cancellation.set()

        for task in tasks:
            task.cancel()
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.error(f"[MonitoringService] Probe loop ended with error: {result}")

        self.ended_at = datetime.now()
        self._set_state(SessionState.STOPPED)
        logger.info(f"[MonitoringService] Stopped session {self._session_id}")

    def reset_target(self, target: MonitorTarget) -> None:
        """Clear one target's statistics."""
        target.reset()
        self.signals.emit(MonitorSignal.TARGET_UPDATED, target.snapshot())

    async def reset_all(self) -> None:
        """Stop, clear every target and the disruption log, and go back to Idle."""
        await self.stop()
        for target in self._targets:
            target.reset()
            self.signals.emit(MonitorSignal.TARGET_UPDATED, target.snapshot())
        self.event_log.clear()
        self.started_at = None
        self.ended_at = None
        self._set_state(SessionState.IDLE)

    # --- Internals ---

    def _on_outcome(self, target: MonitorTarget, created: Optional[DisruptionEvent]) -> None:
        if created is not None:
            self.event_log.append(created)
            self.signals.emit(MonitorSignal.DISRUPTION_CREATED, created.snapshot())
        elif target.open_event is not None:
            self.signals.emit(MonitorSignal.DISRUPTION_UPDATED, target.open_event.snapshot())

        self.signals.emit(MonitorSignal.TARGET_UPDATED, target.snapshot())

    def _set_state(self, state: SessionState) -> None:
        if state == self._state:
            return
        self._state = state
        self.signals.emit(MonitorSignal.SESSION_STATE_CHANGED, state)
