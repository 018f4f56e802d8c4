"""
Trace Orchestrator - Bounded-concurrency path-trace diagnostics.

One run traces a set of addresses with the platform's traceroute/tracert,
at most `capacity` processes alive at a time. Output is streamed line by line
into a per-address buffer so partial output survives a kill.

Stop semantics:
- A run has one cancellation signal. Triggering it kills every live process
  through its registered kill callback and cancels every per-address task.
- Each address ends with exactly one trailer: "completed" when its process
  finished on its own, "stopped by user" otherwise.
- The stop handler, the per-address cleanup and the run finaliser all decide
  on the stopped trailer through one locked check: write it iff the address
  is neither completed nor already annotated.
"""

import asyncio
import threading
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from loguru import logger

from pingwatch.core.constants import TRACE_CONCURRENCY, TRACE_MIN_TIMEOUT_MS
from pingwatch.core.errors import TraceOutputReadError, TraceProcessSpawnError
from pingwatch.core.signals import MonitorSignal, SignalBus
from pingwatch.core.validators import NoTargetsError
from pingwatch.utils.platform_utils import PlatformUtils
from pingwatch.utils.process_utils import ProcessUtils

TRAILER_COMPLETED = "--- completed ---"
TRAILER_STOPPED = "--- stopped by user ---"

CommandBuilder = Callable[[str, int], List[str]]


def _timestamp() -> str:
    return datetime.now().strftime("%Y/%m/%d %H:%M:%S")


class TraceSession:
    """Bookkeeping for one trace run. Flag checks and trailers are lock-guarded."""

    def __init__(self, addresses: Iterable[str], capacity: int, signals: Optional[SignalBus] = None):
        # Duplicates would share a buffer and flags
        self.addresses: List[str] = list(dict.fromkeys(addresses))
        self.capacity = capacity
        self.buffers: Dict[str, List[str]] = {a: [] for a in self.addresses}
        self.completed: Dict[str, bool] = {a: False for a in self.addresses}
        self.stop_annotated: Dict[str, bool] = {a: False for a in self.addresses}
        self.cancel_event = asyncio.Event()
        self.limiter = asyncio.Semaphore(capacity)

        self.active_count = 0
        self.peak_active = 0
        self.started_at = datetime.now()
        self.ended_at: Optional[datetime] = None

        self._signals = signals
        self._lock = threading.RLock()
        self._stop_requested = False
        self._kill_callbacks: Dict[str, Callable[[], None]] = {}
        self._tasks: List[asyncio.Task] = []
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def stop_requested(self) -> bool:
        with self._lock:
            return self._stop_requested

    @property
    def is_finished(self) -> bool:
        return self.ended_at is not None

    def text(self, address: str) -> str:
        with self._lock:
            return "\n".join(self.buffers[address])

    # --- Output ---

    def append(self, address: str, line: str) -> None:
        with self._lock:
            self.buffers[address].append(line)
        if self._signals:
            self._signals.emit(MonitorSignal.TRACE_OUTPUT, (address, line))

    def broadcast(self, line: str) -> None:
        """Write a banner line to every address's buffer."""
        for address in self.addresses:
            self.append(address, line)

    # --- Process tracking ---

    def bind(self, loop: asyncio.AbstractEventLoop, tasks: List[asyncio.Task]) -> None:
        self._loop = loop
        self._tasks = tasks

    def register_kill(self, address: str, callback: Callable[[], None]) -> None:
        with self._lock:
            self._kill_callbacks[address] = callback

    def unregister_kill(self, address: str) -> None:
        with self._lock:
            self._kill_callbacks.pop(address, None)

    def process_started(self) -> None:
        with self._lock:
            self.active_count += 1
            self.peak_active = max(self.peak_active, self.active_count)

    def process_exited(self) -> None:
        with self._lock:
            self.active_count -= 1

    # --- Terminal annotations ---

    def annotate_stopped(self, address: str) -> bool:
        """Write the stopped trailer unless the address is completed or already annotated."""
        with self._lock:
            return self._annotate_stopped_locked(address)

    def _annotate_stopped_locked(self, address: str) -> bool:
        if self.completed[address] or self.stop_annotated[address]:
            return False
        self.stop_annotated[address] = True
        self.append(address, TRAILER_STOPPED)
        if self._signals:
            self._signals.emit(MonitorSignal.TRACE_STOPPED, address)
        return True

    def finish(self, address: str, natural: bool) -> None:
        """Per-address cleanup once its process is gone (or never started)."""
        with self._lock:
            if natural and not self._stop_requested and not self.stop_annotated[address]:
                self.append(address, TRAILER_COMPLETED)
                if self._signals:
                    self._signals.emit(MonitorSignal.TRACE_COMPLETED, address)
            else:
                self._annotate_stopped_locked(address)
            self.completed[address] = True

    def request_stop(self) -> List[str]:
        """
        Stop the run. Safe to call from any thread, and more than once.

        Returns:
            Addresses that received their stopped trailer from this call
        """
        with self._lock:
            if self._stop_requested:
                return []
            self._stop_requested = True
            stopped = [a for a in self.addresses if self._annotate_stopped_locked(a)]
            callbacks = list(self._kill_callbacks.values())

        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.warning(f"[TraceOrchestrator] Kill callback failed: {e}")

        self._cancel_tasks()
        return stopped

    def finalize(self) -> None:
        """Backstop for a stopped run, then the run-end banner."""
        with self._lock:
            if self._stop_requested:
                for address in self.addresses:
                    self._annotate_stopped_locked(address)
        self.ended_at = datetime.now()
        self.broadcast(f"=== trace run ended {_timestamp()} ===")

    def _cancel_tasks(self) -> None:
        if self._loop is None or self._loop.is_closed():
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is self._loop:
            self._cancel_in_loop()
        else:
            self._loop.call_soon_threadsafe(self._cancel_in_loop)

    def _cancel_in_loop(self) -> None:
        self.cancel_event.set()
        for task in self._tasks:
            task.cancel()


class TraceOrchestrator:
    """Runs path-trace diagnostics over a selected address set."""

    def __init__(
        self,
        capacity: int = TRACE_CONCURRENCY,
        no_resolve: bool = True,
        min_hop_timeout_ms: int = TRACE_MIN_TIMEOUT_MS,
        command_builder: Optional[CommandBuilder] = None,
        signals: Optional[SignalBus] = None,
        encoding: Optional[str] = None,
    ):
        """
        Args:
            capacity: Maximum trace processes alive at once
            no_resolve: Skip reverse DNS on hops
            min_hop_timeout_ms: Floor for the per-hop timeout
            command_builder: (address, hop_timeout_ms) -> argv; defaults to the
                platform's traceroute/tracert
            signals: Bus for streamed lines and terminal annotations
            encoding: Encoding of the command's stdout
        """
        if capacity < 1:
            raise ValueError("Trace concurrency must be at least 1")

        self._capacity = capacity
        self._no_resolve = no_resolve
        self._min_hop_timeout_ms = min_hop_timeout_ms
        self._command_builder = command_builder or self._default_command
        self.signals = signals or SignalBus()
        self._encoding = encoding or PlatformUtils.get_console_encoding()
        self._session: Optional[TraceSession] = None

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def session(self) -> Optional[TraceSession]:
        """The current or most recent run."""
        return self._session

    @property
    def is_running(self) -> bool:
        return self._session is not None and not self._session.is_finished

    def hop_timeout_ms(self, timeout_ms: int) -> int:
        return max(self._min_hop_timeout_ms, timeout_ms)

    def _default_command(self, address: str, hop_timeout_ms: int) -> List[str]:
        return PlatformUtils.build_trace_command(address, hop_timeout_ms, self._no_resolve)

    async def run(
        self,
        addresses: Iterable[str],
        timeout_ms: int,
        linked_cancel: Optional[asyncio.Event] = None,
    ) -> TraceSession:
        """
        Trace every address and wait for the whole set.

        Args:
            addresses: Addresses flagged for tracing
            timeout_ms: Probe timeout; the per-hop timeout derives from it
            linked_cancel: Optional event (e.g. a monitoring session's) that
                stops this run when set

        Returns:
            The finished TraceSession

        Raises:
            NoTargetsError: The address set is empty
        """
        addresses = [a for a in addresses if a]
        if not addresses:
            raise NoTargetsError("No addresses selected for tracing")
        if self.is_running:
            raise RuntimeError("A trace run is already in progress")

        session = TraceSession(addresses, self._capacity, self.signals)
        self._session = session
        hop_timeout_ms = self.hop_timeout_ms(timeout_ms)

        session.broadcast(
            f"=== trace run started {_timestamp()} "
            f"({len(session.addresses)} addresses, hop timeout {hop_timeout_ms} ms) ==="
        )
        logger.info(
            f"[TraceOrchestrator] Tracing {len(session.addresses)} addresses "
            f"(capacity={self._capacity}, hop timeout={hop_timeout_ms}ms)"
        )

        tasks = [
            asyncio.create_task(self._trace_one(session, address, hop_timeout_ms), name=f"trace:{address}")
            for address in session.addresses
        ]
        session.bind(asyncio.get_running_loop(), tasks)

        watcher = None
        if linked_cancel is not None:
            watcher = asyncio.create_task(self._follow(linked_cancel, session))

        try:
            await asyncio.gather(*tasks, return_exceptions=True)
        except asyncio.CancelledError:
            session.request_stop()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        finally:
            if watcher is not None:
                watcher.cancel()
            session.finalize()
            logger.info(
                f"[TraceOrchestrator] Run finished "
                f"({'stopped' if session.stop_requested else 'completed'}, peak {session.peak_active} processes)"
            )

        return session

    def stop(self) -> List[str]:
        """Stop the current run; returns the addresses annotated as stopped."""
        if self._session is None:
            return []
        stopped = self._session.request_stop()
        if stopped:
            logger.info(f"[TraceOrchestrator] Stopped by user: {', '.join(stopped)}")
        return stopped

    async def _follow(self, linked_cancel: asyncio.Event, session: TraceSession) -> None:
        await linked_cancel.wait()
        logger.info("[TraceOrchestrator] Linked session stopped, stopping trace run")
        session.request_stop()

    async def _trace_one(self, session: TraceSession, address: str, hop_timeout_ms: int) -> None:
        natural = False
        try:
            async with session.limiter:
                if session.stop_requested:
                    return
                await self._run_process(session, address, hop_timeout_ms)
                natural = True
        finally:
            session.finish(address, natural)

    async def _run_process(self, session: TraceSession, address: str, hop_timeout_ms: int) -> None:
        cmd = self._command_builder(address, hop_timeout_ms)
        session.append(
            address,
            f"--- {cmd[0]} {address} (timeout={hop_timeout_ms}ms, no-resolve={self._no_resolve}) ---",
        )

        try:
            proc = await self._spawn(cmd)
        except TraceProcessSpawnError as e:
            logger.warning(f"[TraceOrchestrator] {address}: {e}")
            session.append(address, f"(trace failed to start: {e})")
            return

        session.register_kill(address, lambda: ProcessUtils.kill_process_tree(proc.pid))
        session.process_started()
        try:
            await self._stream_output(session, address, proc)
            await proc.wait()
        finally:
            session.unregister_kill(address)
            try:
                if proc.returncode is None:
                    ProcessUtils.kill_process_tree(proc.pid)
                    await proc.wait()
            finally:
                session.process_exited()

    async def _spawn(self, cmd: List[str]) -> asyncio.subprocess.Process:
        try:
            return await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                creationflags=PlatformUtils.get_subprocess_flags(),
            )
        except (OSError, ValueError) as e:
            raise TraceProcessSpawnError(f"{cmd[0]}: {e}") from e

    async def _stream_output(self, session: TraceSession, address: str, proc) -> None:
        while True:
            try:
                line = await self._read_line(proc)
            except TraceOutputReadError as e:
                session.append(address, f"(output read error: {e})")
                return
            if line is None:
                return
            session.append(address, line)

    async def _read_line(self, proc) -> Optional[str]:
        """Next stdout line without its newline, or None at end of stream."""
        try:
            raw = await proc.stdout.readline()
        except (ValueError, OSError) as e:
            raise TraceOutputReadError(str(e)) from e
        if not raw:
            return None
        return raw.decode(self._encoding, errors="replace").rstrip("\r\n")
