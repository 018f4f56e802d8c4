"""
Ping Console - Continuous single-target ping with a mirrored log file.

Every line shown to the user is also appended to
Ping_<address>_<host>_<YYYYMMDD>.log in the log folder as soon as it is
produced, so the log survives an abrupt exit.
"""

import asyncio
import os
from datetime import datetime
from typing import Callable, Optional

from loguru import logger

from pingwatch.core.constants import DEFAULT_INTERVAL_MS, DEFAULT_TIMEOUT_MS, FILE_ENCODING
from pingwatch.repositories.file_utils import append_text, sanitize_filename
from pingwatch.services.probe_loop import Prober

LineCallback = Callable[[str], None]


class PingConsole:
    """Single-target ping session producing timestamped text lines."""

    def __init__(
        self,
        address: str,
        host: str = "",
        prober: Optional[Prober] = None,
        log_dir: Optional[str] = None,
        interval_ms: int = DEFAULT_INTERVAL_MS,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        on_line: Optional[LineCallback] = None,
        encoding: str = FILE_ENCODING,
    ):
        if prober is None:
            from pingwatch.services.prober import IcmpProber

            prober = IcmpProber()

        self.address = address
        self.host = host
        self.interval_ms = interval_ms
        self.timeout_ms = timeout_ms
        self._prober = prober
        self._on_line = on_line
        self._encoding = encoding
        self._log_warned = False

        self.log_path: Optional[str] = None
        if log_dir:
            stamp = datetime.now().strftime("%Y%m%d")
            file_name = f"Ping_{sanitize_filename(address)}_{sanitize_filename(host)}_{stamp}.log"
            self.log_path = os.path.join(log_dir, file_name)

        self.sent = 0
        self.received = 0

    async def run(self, count: Optional[int] = None) -> None:
        """Ping until cancelled, or `count` times when given."""
        self._emit(f"Pinging {self.address} ({self.host or 'no host name'}) every {self.interval_ms} ms")
        if self.log_path:
            self._emit(f"Logging to {self.log_path}")

        try:
            while count is None or self.sent < count:
                await self.ping_once()
                if count is not None and self.sent >= count:
                    break
                await asyncio.sleep(self.interval_ms / 1000)
        finally:
            self._emit(self._summary())
            if self.log_path:
                self._emit(f"Log saved to {self.log_path}")

    async def ping_once(self) -> str:
        """Send one probe and emit its line."""
        self.sent += 1
        try:
            result = await self._prober.probe(self.address, self.timeout_ms)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            line = f"[Error] {e}"
        else:
            if result.success:
                self.received += 1
                line = f"Reply from {self.address}: time={result.rtt_ms:.0f}ms"
            else:
                line = "Request timed out."

        line = f"[{datetime.now():%Y/%m/%d %H:%M:%S}] {line}"
        self._emit(line)
        return line

    def _summary(self) -> str:
        lost = self.sent - self.received
        loss = (lost / self.sent * 100) if self.sent else 0.0
        return f"--- {self.address}: {self.sent} sent, {self.received} received, {loss:.0f}% loss ---"

    def _emit(self, line: str) -> None:
        if self._on_line:
            self._on_line(line)
        if not self.log_path:
            return
        if not append_text(self.log_path, line + "\n", self._encoding) and not self._log_warned:
            # Keep pinging; warn once
            self._log_warned = True
            logger.warning(f"[PingConsole] Could not write {self.log_path}, continuing without log")
