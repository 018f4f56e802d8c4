"""Probe Loop - Drives one target with sequential probes until cancelled."""

import asyncio
from typing import Callable, Optional, Protocol

from loguru import logger

from pingwatch.core.events import DisruptionEvent
from pingwatch.core.target import MonitorTarget
from pingwatch.core.types import TargetStatus
from pingwatch.services.prober import ProbeResult


class Prober(Protocol):
    """Anything that can send one echo request."""

    async def probe(self, address: str, timeout_ms: int) -> ProbeResult:
        ...


OutcomeCallback = Callable[[MonitorTarget, Optional[DisruptionEvent]], None]


class ProbeLoop:
    """
    One indefinite probe task for one target.

    Errors from the prober count as failed probes and never leave the loop.
    Cancellation during a probe or the pause exits without a trailing probe.
    """

    def __init__(
        self,
        target: MonitorTarget,
        prober: Prober,
        on_outcome: Optional[OutcomeCallback] = None,
    ):
        """
        Args:
            target: Target whose state machine receives the outcomes
            prober: Sends the echo requests
            on_outcome: Called after every probe with the target and the
                disruption event that probe created (or None)
        """
        self._target = target
        self._prober = prober
        self._on_outcome = on_outcome

    @property
    def target(self) -> MonitorTarget:
        return self._target

    async def run(self) -> None:
        target = self._target
        logger.debug(f"[ProbeLoop] Started {target.address} (every {target.interval_ms} ms)")
        try:
            while True:
                await self.probe_once()
                await asyncio.sleep(target.interval_ms / 1000)
        except asyncio.CancelledError:
            logger.debug(f"[ProbeLoop] Stopped {target.address} after {target.send_count} probes")
            raise

    async def probe_once(self) -> Optional[DisruptionEvent]:
        """Send one probe and apply its outcome to the target."""
        target = self._target
        try:
            result = await self._prober.probe(target.address, target.timeout_ms)
        except Exception as e:
            logger.debug(f"[ProbeLoop] {target.address} probe error: {e}")
            result = ProbeResult.failed()

        created = None
        if result.success:
            created = target.record_success(result.rtt_ms)
            if created is not None:
                logger.info(
                    f"[ProbeLoop] {target.address} recovered after "
                    f"{created.failure_count} failures ({created.duration_text})"
                )
        else:
            was_down = target.status == TargetStatus.DOWN
            target.record_failure()
            if not was_down:
                logger.warning(f"[ProbeLoop] {target.address} went down")

        if self._on_outcome:
            self._on_outcome(target, created)
        return created
