"""Tests for the single-target ping console."""

import asyncio
from datetime import datetime

import pytest

from pingwatch.core.errors import ProbeTransportError
from pingwatch.services.ping_console import PingConsole
from pingwatch.services.prober import ProbeResult


class ScriptedProber:
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)

    async def probe(self, address, timeout_ms):
        outcome = self.outcomes.pop(0) if self.outcomes else ProbeResult(True, 1.0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class TestPingConsole:
    @pytest.mark.asyncio
    async def test_lines_and_log_file(self, tmp_path):
        """Test reply, timeout and error lines mirrored to the log."""
        lines = []
        prober = ScriptedProber([ProbeResult(True, 12.3), ProbeResult.failed(), ProbeTransportError("boom")])
        console = PingConsole(
            "10.0.0.1", "router", prober=prober, log_dir=str(tmp_path), interval_ms=1, on_line=lines.append
        )

        await console.run(count=3)

        assert console.log_path == str(tmp_path / f"Ping_10.0.0.1_router_{datetime.now():%Y%m%d}.log")
        probe_lines = [line for line in lines if line.startswith("[")]
        assert len(probe_lines) == 3
        assert probe_lines[0].endswith("] Reply from 10.0.0.1: time=12ms")
        assert probe_lines[1].endswith("] Request timed out.")
        assert probe_lines[2].endswith("] [Error] boom")
        assert "3 sent, 1 received, 67% loss" in lines[-2]
        assert lines[-1] == f"Log saved to {console.log_path}"

        logged = open(console.log_path, encoding="utf-8").read().splitlines()
        assert logged == lines

    @pytest.mark.asyncio
    async def test_runs_until_cancelled(self):
        lines = []
        console = PingConsole("10.0.0.1", prober=ScriptedProber([]), interval_ms=5, on_line=lines.append)
        task = asyncio.create_task(console.run())

        await asyncio.sleep(0.1)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert console.sent >= 2
        assert "sent" in lines[-1]

    @pytest.mark.asyncio
    async def test_log_failure_does_not_stop_console(self, tmp_path):
        """Test that an unwritable log folder is tolerated."""
        blocker = tmp_path / "not-a-folder"
        blocker.write_text("x")
        lines = []
        console = PingConsole(
            "10.0.0.1", prober=ScriptedProber([]), log_dir=str(blocker), interval_ms=1, on_line=lines.append
        )

        await console.run(count=2)

        assert console.sent == 2
        assert console.received == 2
        assert len([line for line in lines if line.startswith("[")]) == 2
