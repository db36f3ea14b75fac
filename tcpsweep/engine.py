# tcpsweep/engine.py
import asyncio
import logging
import socket
import time
from typing import Callable, List, Optional

from .config import ScanConfig
from .errors import ResourceExhaustion
from .models import OpenPort, ProgressSnapshot, ScanSummary
from .pool import ScanPool
from .sinks import ResultSink
from .slot import AttemptOutcome, nonblocking_socket

logger = logging.getLogger(__name__)

# Pause after the OS refuses to hand out another socket
RESOURCE_BACKOFF = 10.0

ProgressCallback = Callable[[ProgressSnapshot], None]


class ScanEngine:
    """
    Drives one scan: feeds targets into free pool slots, polls the pool on a
    fixed interval and drains it once the address space runs out or the scan
    is cancelled.

    Everything runs on one task. The only await is the sleep between polling
    passes, and ``cancel()`` cuts that sleep short.
    """
    def __init__(
        self,
        config: ScanConfig,
        sink: Optional[ResultSink] = None,
        progress: Optional[ProgressCallback] = None,
        socket_factory: Callable[[], socket.socket] = nonblocking_socket,
        clock: Callable[[], float] = time.monotonic,
        backoff: float = RESOURCE_BACKOFF,
    ):
        self.config = config
        self.space = config.address_space()
        self.pool = ScanPool(config.capacity, socket_factory=socket_factory, clock=clock)
        self.sink = sink
        self.progress = progress
        self.timeout = config.timeout
        self.poll_interval = config.poll_interval
        self.backoff = backoff

        self.total = self.space.total
        self.issued = 0
        self.open_found = 0
        self.open_ports: List[OpenPort] = []
        self.started_at: Optional[float] = None

        self._cancelled = False
        self._wakeup: Optional[asyncio.Event] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Stop issuing attempts and drain. Safe to call from a signal handler or another thread."""
        if not self._cancelled:
            logger.warning("Cancellation requested, cleaning up outstanding attempts...")
        self._cancelled = True
        loop, wakeup = self._loop, self._wakeup
        if loop is None or wakeup is None or loop.is_closed():
            return
        try:
            loop.call_soon_threadsafe(wakeup.set)
        except RuntimeError:
            # loop closed between the check and the call: run() has already returned
            logger.debug("Cancel arrived after the scan finished.")

    def snapshot(self) -> ProgressSnapshot:
        return ProgressSnapshot(issued=self.issued, total=self.total, open_found=self.open_found)

    async def run(self) -> ScanSummary:
        """
        Runs the scan to completion (or cancellation) and returns the summary.

        Every socket is closed before this returns, including when the
        awaiting task itself is cancelled.
        """
        self._loop = asyncio.get_running_loop()
        self._wakeup = asyncio.Event()
        if self._cancelled:
            self._wakeup.set()
        self.started_at = time.monotonic()

        logger.info(f"Scanning {self.space.host_count} host(s) ({self.space.first_host} - {self.space.last_host}), "
                    f"ports {self.space.first_port}-{self.space.last_port}: {self.total} attempts "
                    f"with {self.pool.capacity} sockets.")
        try:
            while not self.space.exhausted and not self._cancelled:
                await self._fill()
                await self._sleep(self.poll_interval)
                self._poll()

            if not self._cancelled:
                logger.info("Waiting for remaining sockets...")
                await self._wait_remaining()
            self._poll()
        finally:
            evicted = self.pool.drain_all()
            if evicted:
                logger.debug(f"Evicted {evicted} unresolved attempt(s) at shutdown.")
            self._loop = None
            self._wakeup = None

        summary = self._summary()
        logger.info(f"Scan finished: {summary.open_found} open, {summary.closed} closed, "
                    f"{summary.timed_out} timed out in {summary.duration:.2f}s"
                    f"{' (cancelled)' if summary.cancelled else ''}.")
        return summary

    async def _fill(self):
        try:
            issued = self.pool.fill_idle(self.space)
        except ResourceExhaustion as e:
            self.issued += e.issued
            self._report_progress()
            logger.warning(f"{e}. Try with fewer than {self.pool.capacity} sockets. "
                           f"Sleeping {self.backoff:g}s.")
            await self._sleep(self.backoff)
            return
        self.issued += issued
        self._report_progress()

    def _poll(self):
        for result in self.pool.poll_all(self.timeout):
            self.open_found += 1
            self.open_ports.append(result)
            logger.debug(f"Open {result.host}:{result.port} ({result.latency:.3f}s)")
            if self.sink:
                self.sink.emit(result)

    async def _wait_remaining(self):
        # Attempts still in flight time out on their own within `timeout`
        deadline = time.monotonic() + self.timeout
        while self.pool.busy() and not self._cancelled and time.monotonic() < deadline:
            await self._sleep(self.poll_interval)
            self._poll()

    async def _sleep(self, seconds: float):
        if self._cancelled:
            return
        try:
            await asyncio.wait_for(self._wakeup.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    def _report_progress(self):
        if self.progress:
            self.progress(self.snapshot())

    def _summary(self) -> ScanSummary:
        outcomes = self.pool.outcomes
        return ScanSummary(
            total=self.total,
            issued=self.issued,
            open_found=self.open_found,
            closed=outcomes[AttemptOutcome.CLOSED],
            timed_out=outcomes[AttemptOutcome.TIMEOUT],
            duration=time.monotonic() - self.started_at,
            cancelled=self._cancelled,
            open_ports=list(self.open_ports),
        )


async def run_scan(
    config: ScanConfig,
    sink: Optional[ResultSink] = None,
    progress: Optional[ProgressCallback] = None,
) -> ScanSummary:
    """Convenience wrapper: build an engine for ``config`` and run it."""
    return await ScanEngine(config, sink=sink, progress=progress).run()
