"""Monitor Target - Per-endpoint reachability state machine."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from pingwatch.core.constants import DEFAULT_INTERVAL_MS, DEFAULT_TIMEOUT_MS
from pingwatch.core.events import DisruptionEvent, format_duration
from pingwatch.core.statistics import StatisticsAccumulator, StatsSnapshot
from pingwatch.core.types import TargetStatus

LABEL_OK = "OK"
LABEL_RECOVERED = "Recovered"
LABEL_DOWN = "Down"


@dataclass(frozen=True)
class TargetSnapshot:
    """Immutable per-probe view of a target, published to subscribers."""

    sequence: int
    address: str
    host: str
    status: TargetStatus
    label: str
    send_count: int
    fail_count: int
    consecutive_fail_count: int
    current_rtt: float
    stats: StatsSnapshot
    down_duration: str
    max_down_duration: str
    trace_selected: bool


class MonitorTarget:
    """
    One monitored endpoint.

    Unknown -> Up / Down on the first probe, then Up <-> Down. The first Up
    after a Down is labelled "Recovered" for one probe; it is not a state.

    Not thread-safe: a target is only ever driven by its own probe loop.
    """

    def __init__(
        self,
        sequence: int,
        address: str,
        host: str = "",
        interval_ms: int = DEFAULT_INTERVAL_MS,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        trace_selected: bool = False,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.sequence = sequence
        self.address = address
        self.host = host
        self.interval_ms = interval_ms
        self.timeout_ms = timeout_ms
        self.trace_selected = trace_selected
        self._clock = clock
        self._session = StatisticsAccumulator()
        self.reset()

    def reset(self) -> None:
        """Clear all collected data; identity and settings are kept."""
        self.status = TargetStatus.UNKNOWN
        self.label = ""

        self.send_count = 0
        self.fail_count = 0
        self.consecutive_fail_count = 0
        self.current_rtt = 0.0
        self._session.reset()

        self.continuous_down_start: Optional[datetime] = None
        self.max_disruption_duration = timedelta(0)
        self.current_disruption_failure_count = 0
        self.down_duration_text = ""
        self.max_down_duration_text = ""

        self.pre_down = StatsSnapshot()
        # Non-owning: the event log owns events
        self.open_event: Optional[DisruptionEvent] = None

    @property
    def key(self) -> str:
        return f"{self.sequence}:{self.address}"

    @property
    def stats(self) -> StatsSnapshot:
        return self._session.snapshot()

    @property
    def success_count(self) -> int:
        return self.send_count - self.fail_count

    def record_success(self, rtt: float) -> Optional[DisruptionEvent]:
        """
        Apply a successful probe.

        Returns:
            The disruption event created by this probe if it ended a Down
            episode, otherwise None
        """
        now = self._clock()
        created = None
        self.send_count += 1

        if self.status == TargetStatus.DOWN:
            created = DisruptionEvent(
                address=self.address,
                host=self.host,
                down_start=self.continuous_down_start,
                recovery_time=now,
                failure_count=self.current_disruption_failure_count,
                pre_down=self.pre_down,
                post_recovery=StatsSnapshot.single(rtt),
            )
            self._session.reset()
            self.continuous_down_start = None
            self.current_disruption_failure_count = 0
            self.open_event = created

        self._session.add(rtt)
        stats = self._session.snapshot()

        if self.open_event is not None:
            self.open_event.post_recovery = stats

        self.label = LABEL_RECOVERED if created is not None else LABEL_OK
        self.status = TargetStatus.UP
        self.current_rtt = rtt
        self.consecutive_fail_count = 0
        self.down_duration_text = ""
        return created

    def record_failure(self) -> None:
        """Apply a failed probe (timeout, transport error or bad status)."""
        now = self._clock()
        self.send_count += 1

        if self.status != TargetStatus.DOWN:
            self.pre_down = self._session.snapshot()
            self.continuous_down_start = now
            self.current_disruption_failure_count = 0
            self._session.break_chain()
            self.open_event = None

        self.fail_count += 1
        self.consecutive_fail_count += 1
        self.current_disruption_failure_count += 1
        self.current_rtt = 0.0

        down_for = now - self.continuous_down_start
        self.down_duration_text = format_duration(down_for)
        if down_for > self.max_disruption_duration:
            self.max_disruption_duration = down_for
            self.max_down_duration_text = format_duration(down_for)

        self.status = TargetStatus.DOWN
        self.label = LABEL_DOWN

    def snapshot(self) -> TargetSnapshot:
        return TargetSnapshot(
            sequence=self.sequence,
            address=self.address,
            host=self.host,
            status=self.status,
            label=self.label,
            send_count=self.send_count,
            fail_count=self.fail_count,
            consecutive_fail_count=self.consecutive_fail_count,
            current_rtt=self.current_rtt,
            stats=self.stats,
            down_duration=self.down_duration_text,
            max_down_duration=self.max_down_duration_text,
            trace_selected=self.trace_selected,
        )

    def __repr__(self) -> str:
        return f"MonitorTarget({self.sequence}, {self.address!r}, status={self.status})"
