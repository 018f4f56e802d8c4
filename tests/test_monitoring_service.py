"""Tests for the monitoring session service."""

import asyncio

import pytest

from pingwatch.core.events import DisruptionEvent
from pingwatch.core.signals import MonitorSignal
from pingwatch.core.target import MonitorTarget
from pingwatch.core.types import SessionState, TargetStatus
from pingwatch.core.validators import NoTargetsError, ValidationError
from pingwatch.services.monitoring_service import MonitoringService
from pingwatch.services.prober import ProbeResult


class AddressScriptedProber:
    """Per-address scripts of up/down answers; answers 10 ms once a script runs out."""

    def __init__(self, scripts=None):
        self.scripts = {address: list(outcomes) for address, outcomes in (scripts or {}).items()}

    async def probe(self, address, timeout_ms):
        outcomes = self.scripts.get(address)
        if outcomes:
            return ProbeResult(True, 10.0) if outcomes.pop(0) else ProbeResult.failed()
        return ProbeResult(True, 10.0)


async def wait_until(predicate, timeout=5.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("Condition not met in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def signals_seen():
    return []


@pytest.fixture
def service(signals_seen):
    svc = MonitoringService(prober=AddressScriptedProber({"10.0.0.2": [False, False, True]}))
    svc.signals.subscribe(lambda signal, payload: signals_seen.append((signal, payload)))
    return svc


def make_targets():
    return [
        MonitorTarget(1, "10.0.0.1", "core"),
        MonitorTarget(2, "10.0.0.2", "edge", trace_selected=True),
    ]


class TestMonitoringService:
    def test_initial_state(self, service):
        assert service.state == SessionState.IDLE
        assert service.session_id == 0
        assert service.cancellation is None

    @pytest.mark.asyncio
    async def test_start_without_targets(self, service):
        """Test that an empty target set is rejected."""
        with pytest.raises(NoTargetsError):
            await service.start([])
        with pytest.raises(NoTargetsError):
            await service.start([MonitorTarget(1, "")])
        assert service.state == SessionState.IDLE

    @pytest.mark.asyncio
    async def test_start_rejects_invalid_interval(self, service):
        with pytest.raises(ValidationError):
            await service.start(make_targets(), interval_ms=0)

    @pytest.mark.asyncio
    async def test_start_and_stop(self, service, signals_seen):
        """Test the Idle -> Running -> Stopped lifecycle."""
        session_id = await service.start(make_targets(), interval_ms=10, timeout_ms=100)
        assert session_id == 1
        assert service.is_running
        assert service.started_at is not None

        await asyncio.sleep(0.05)
        await service.stop()

        assert service.state == SessionState.STOPPED
        assert service.cancellation.is_set()
        assert service.ended_at >= service.started_at
        states = [p for s, p in signals_seen if s == MonitorSignal.SESSION_STATE_CHANGED]
        assert states == [SessionState.RUNNING, SessionState.STOPPED]

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self, service):
        await service.stop()
        await service.start(make_targets(), interval_ms=10)
        await service.stop()
        await service.stop()
        assert service.state == SessionState.STOPPED

    @pytest.mark.asyncio
    async def test_no_probes_after_stop(self, service):
        """Test that every loop is joined before stop returns."""
        await service.start(make_targets(), interval_ms=5)
        await asyncio.sleep(0.05)
        await service.stop()

        counts = [t.send_count for t in service.targets]
        await asyncio.sleep(0.05)
        assert [t.send_count for t in service.targets] == counts

    @pytest.mark.asyncio
    async def test_disruption_recorded_and_signalled(self, service, signals_seen):
        """Test a Down -> Up episode ends up in the log."""
        await service.start(make_targets(), interval_ms=5)
        await wait_until(lambda: len(service.event_log) == 1)
        await wait_until(lambda: service.targets[1].send_count >= 5)
        await service.stop()

        event = service.event_log.snapshot()[0]
        assert event.address == "10.0.0.2"
        assert event.failure_count == 2

        kinds = [s for s, _ in signals_seen]
        assert MonitorSignal.DISRUPTION_CREATED in kinds
        assert MonitorSignal.DISRUPTION_UPDATED in kinds
        created = next(p for s, p in signals_seen if s == MonitorSignal.DISRUPTION_CREATED)
        assert isinstance(created, DisruptionEvent)
        assert created is not event

    @pytest.mark.asyncio
    async def test_restart_resets_statistics_and_log(self, service):
        """Test that every start begins from a clean slate."""
        targets = make_targets()
        await service.start(targets, interval_ms=5)
        await wait_until(lambda: len(service.event_log) == 1)

        await service.start(interval_ms=1000)

        assert service.session_id == 2
        assert len(service.event_log) == 0
        assert all(t.send_count == 0 for t in targets)
        assert all(t.status == TargetStatus.UNKNOWN for t in targets)
        await service.stop()

    @pytest.mark.asyncio
    async def test_set_targets_while_running(self, service):
        await service.start(make_targets(), interval_ms=10)
        with pytest.raises(RuntimeError):
            service.set_targets([MonitorTarget(1, "10.0.0.9")])
        await service.stop()

    def test_duplicate_sequences_rejected(self, service):
        with pytest.raises(ValidationError):
            service.set_targets([MonitorTarget(1, "10.0.0.1"), MonitorTarget(1, "10.0.0.2")])

    @pytest.mark.asyncio
    async def test_reset_all(self, service):
        """Test that reset_all stops and returns to Idle."""
        await service.start(make_targets(), interval_ms=5)
        await wait_until(lambda: len(service.event_log) == 1)

        await service.reset_all()

        assert service.state == SessionState.IDLE
        assert len(service.event_log) == 0
        assert all(t.send_count == 0 for t in service.targets)
        assert service.started_at is None

    def test_reset_target_emits_snapshot(self, service, signals_seen):
        target = MonitorTarget(1, "10.0.0.1")
        target.record_failure()
        service.reset_target(target)

        assert target.send_count == 0
        signal, payload = signals_seen[-1]
        assert signal == MonitorSignal.TARGET_UPDATED
        assert payload.send_count == 0

    def test_trace_addresses(self, service):
        service.set_targets(make_targets())
        assert service.trace_addresses() == ["10.0.0.2"]
