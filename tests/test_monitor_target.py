"""Tests for the per-target reachability state machine."""

import dataclasses
from datetime import datetime, timedelta

import pytest

from pingwatch.core.target import LABEL_DOWN, LABEL_OK, LABEL_RECOVERED, MonitorTarget
from pingwatch.core.types import TargetStatus


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 1, 1, 12, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, seconds: float = 1.0):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def target(clock):
    return MonitorTarget(1, "10.0.0.1", "core", clock=clock)


def succeed(target, clock, *rtts):
    created = None
    for rtt in rtts:
        clock.advance()
        created = target.record_success(rtt) or created
    return created


def fail(target, clock, times=1):
    for _ in range(times):
        clock.advance()
        target.record_failure()


def assert_counters_consistent(target):
    assert target.send_count == target.success_count + target.fail_count
    assert target.consecutive_fail_count <= target.fail_count


class TestMonitorTarget:
    def test_initial_state(self, target):
        """Test a fresh target."""
        assert target.status == TargetStatus.UNKNOWN
        assert target.label == ""
        assert target.send_count == 0
        assert target.open_event is None
        assert target.key == "1:10.0.0.1"

    def test_first_success_goes_up(self, target, clock):
        """Test Unknown -> Up."""
        created = succeed(target, clock, 12)
        assert created is None
        assert target.status == TargetStatus.UP
        assert target.label == LABEL_OK
        assert target.current_rtt == 12

    def test_first_failure_goes_down(self, target, clock):
        """Test Unknown -> Down."""
        fail(target, clock)
        assert target.status == TargetStatus.DOWN
        assert target.label == LABEL_DOWN
        assert target.consecutive_fail_count == 1
        assert target.current_rtt == 0.0
        assert_counters_consistent(target)

    def test_disruption_event_scenario(self, target, clock):
        """Test 10/20/10/20/10, three failures, then 15."""
        succeed(target, clock, 10, 20, 10, 20, 10)
        fail(target, clock, 3)

        assert target.status == TargetStatus.DOWN
        assert target.fail_count == 3
        assert target.consecutive_fail_count == 3
        assert target.current_disruption_failure_count == 3
        assert target.down_duration_text == "00:00:02"
        assert_counters_consistent(target)

        event = succeed(target, clock, 15)

        assert event is not None
        assert event.address == "10.0.0.1"
        assert event.host == "core"
        assert event.failure_count == 3
        assert event.duration_text == "00:00:03"
        assert event.pre_down.avg == pytest.approx(14.0)
        assert event.pre_down.min == 10
        assert event.pre_down.max == 20
        assert event.pre_down.jitter_max_min == 10
        assert event.pre_down.jitter_pair_avg == pytest.approx(10.0)
        assert event.post_recovery.avg == 15
        assert event.post_recovery.min == 15
        assert event.post_recovery.max == 15

        assert target.status == TargetStatus.UP
        assert target.label == LABEL_RECOVERED
        assert target.consecutive_fail_count == 0
        assert target.down_duration_text == ""
        assert target.open_event is event
        assert target.stats.avg == 15
        assert_counters_consistent(target)

    def test_open_event_tracks_live_statistics(self, target, clock):
        """Test that later successes update the open event."""
        succeed(target, clock, 10)
        fail(target, clock, 2)
        event = succeed(target, clock, 15)

        assert succeed(target, clock, 25) is None
        assert target.label == LABEL_OK
        assert event.post_recovery.avg == pytest.approx(20.0)
        assert event.post_recovery.min == 15
        assert event.post_recovery.max == 25
        assert event.post_recovery.jitter_pair_avg == pytest.approx(10.0)

    def test_next_down_closes_event(self, target, clock):
        """Test that a new Down stops updates to the previous event."""
        succeed(target, clock, 10)
        fail(target, clock)
        event = succeed(target, clock, 15, 25)
        post_before = event.post_recovery

        fail(target, clock)
        assert target.open_event is None
        succeed(target, clock, 100)
        assert event.post_recovery == post_before

    def test_consecutive_failures_do_not_restart_episode(self, target, clock):
        """Test that Down -> Down keeps the episode start."""
        succeed(target, clock, 10)
        fail(target, clock)
        start = target.continuous_down_start
        pre_down = target.pre_down

        fail(target, clock, 4)
        assert target.continuous_down_start == start
        assert target.pre_down == pre_down
        assert target.current_disruption_failure_count == 5

    def test_max_down_duration_keeps_longest(self, target, clock):
        """Test the longest outage survives a shorter one."""
        succeed(target, clock, 10)
        fail(target, clock, 5)
        succeed(target, clock, 10)
        assert target.max_down_duration_text == "00:00:04"

        fail(target, clock, 2)
        assert target.max_down_duration_text == "00:00:04"
        assert target.down_duration_text == "00:00:01"

    def test_pair_chain_not_joined_across_outage(self, target, clock):
        """Test that the first rtt after recovery starts a new chain."""
        succeed(target, clock, 10, 12)
        fail(target, clock)
        succeed(target, clock, 80)
        assert target.stats.jitter_pair_avg == 0.0

    def test_failure_from_unknown_then_recovery(self, target, clock):
        """Test an event whose pre-down statistics are empty."""
        fail(target, clock, 2)
        event = succeed(target, clock, 30)
        assert event is not None
        assert event.pre_down.avg == 0.0
        assert event.failure_count == 2

    def test_reset(self, target, clock):
        """Test that reset clears everything but identity."""
        target.trace_selected = True
        succeed(target, clock, 10)
        fail(target, clock)
        target.reset()

        assert target.status == TargetStatus.UNKNOWN
        assert target.send_count == 0
        assert target.fail_count == 0
        assert target.max_down_duration_text == ""
        assert target.continuous_down_start is None
        assert target.open_event is None
        assert target.stats.avg == 0.0
        assert target.address == "10.0.0.1"
        assert target.trace_selected is True

    def test_snapshot_is_immutable(self, target, clock):
        """Test that snapshots cannot be modified."""
        succeed(target, clock, 10)
        snap = target.snapshot()
        assert snap.status == TargetStatus.UP
        assert snap.stats.avg == 10
        with pytest.raises(dataclasses.FrozenInstanceError):
            snap.send_count = 99
