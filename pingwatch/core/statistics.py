"""
Session latency statistics.

A session is the run of successful probes since the target last recovered
(or since monitoring started). All values are in milliseconds.
"""

import math
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class StatsSnapshot:
    """Immutable view of a session's statistics."""

    avg: float = 0.0
    min: float = 0.0
    max: float = 0.0
    jitter_max_min: float = 0.0
    jitter_pair_avg: float = 0.0
    std_dev: float = 0.0

    @classmethod
    def single(cls, rtt: float) -> "StatsSnapshot":
        """Statistics of a session holding exactly one sample."""
        return cls(avg=rtt, min=rtt, max=rtt)


class StatisticsAccumulator:
    """Running sums for one session; no history is kept."""

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        """Forget every sample, including the pair chain."""
        self.count = 0
        self.total = 0.0
        self.sum_squares = 0.0
        self.min = 0.0
        self.max = 0.0
        self.previous_rtt: Optional[float] = None
        self.jitter_pair_sum = 0.0
        self.jitter_pair_count = 0

    def add(self, rtt: float) -> None:
        """Fold one successful round-trip time into the session."""
        self.count += 1
        self.total += rtt
        self.sum_squares += rtt * rtt

        if self.count == 1:
            self.min = rtt
            self.max = rtt
        else:
            if rtt < self.min:
                self.min = rtt
            if rtt > self.max:
                self.max = rtt

        if self.previous_rtt is not None:
            self.jitter_pair_sum += abs(rtt - self.previous_rtt)
            self.jitter_pair_count += 1
        self.previous_rtt = rtt

    def break_chain(self) -> None:
        """Stop the next sample from pairing with the last one."""
        self.previous_rtt = None

    @property
    def average(self) -> float:
        if self.count == 0:
            return 0.0
        return self.total / self.count

    @property
    def jitter_max_min(self) -> float:
        return self.max - self.min

    @property
    def jitter_pair_avg(self) -> float:
        if self.jitter_pair_count == 0:
            return 0.0
        return self.jitter_pair_sum / self.jitter_pair_count

    @property
    def std_dev(self) -> float:
        """Population standard deviation."""
        if self.count == 0:
            return 0.0
        avg = self.average
        variance = self.sum_squares / self.count - avg * avg
        # Rounding can push a zero variance slightly negative
        return math.sqrt(max(0.0, variance))

    def snapshot(self) -> StatsSnapshot:
        return StatsSnapshot(
            avg=self.average,
            min=self.min,
            max=self.max,
            jitter_max_min=self.jitter_max_min,
            jitter_pair_avg=self.jitter_pair_avg,
            std_dev=self.std_dev,
        )
