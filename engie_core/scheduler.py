"""
Scan Scheduler - Decide when to call the analysis service

State machine (one scheduler per open document):

    idle -> countdown -> scanning -> applying-results -> idle
              ^   |          |
              +---+          +-> countdown   (edits arrived while scanning)

- every text change (re)starts the countdown from the full interval, so a
  scan only fires after a quiet period
- at most one scan is in flight; edits made during a scan are remembered
  and start a new countdown once it resolves
- failures are logged and swallowed; the next countdown is the retry
- after close() results still in flight are discarded when they arrive;
  the analysis call itself offers no cancellation

Runs on the asyncio event loop; no threads besides the analyzer's own.

Author: Engie contributors | 2025-06-23
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional

from .analysis.base import AnalysisResult
from .errors import AnalysisTransportFailure
from .text_buffer import TextBuffer

logger = logging.getLogger(__name__)

AnalyzeFn = Callable[[str], Awaitable[AnalysisResult]]
ResultsFn = Callable[[AnalysisResult, TextBuffer], None]
FailureFn = Callable[[Exception], None]


class ScanState(str, Enum):
    """Scan state of one document."""
    IDLE = "idle"
    COUNTDOWN = "countdown"
    SCANNING = "scanning"
    APPLYING_RESULTS = "applying-results"


class ScanScheduler:
    """
    Debounced, single-flight scan trigger.

    Example:
        async with ScanScheduler(analyzer.analyze_async, on_results, interval=3.0) as scheduler:
            scheduler.text_changed(buffer)   # scan fires 3s after the last change
    """

    def __init__(
        self,
        analyze: AnalyzeFn,
        on_results: ResultsFn,
        interval: float = 3.0,
        scan_timeout: Optional[float] = 60.0,
        auto_scan: bool = True,
        document_id: str = "",
        on_failure: Optional[FailureFn] = None,
    ):
        """
        Initialize scheduler.

        Args:
            analyze: Coroutine function text -> AnalysisResult
            on_results: Called with (result, scanned buffer) on success
            interval: Quiet period before a scan fires, seconds
            scan_timeout: Upper bound for one scan (None = unbounded)
            auto_scan: Start countdowns on text changes
            document_id: Identifier used in logs
            on_failure: Called with the exception when a scan fails
        """
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._analyze = analyze
        self._on_results = on_results
        self._on_failure = on_failure
        self.interval = interval
        self.scan_timeout = scan_timeout
        self.document_id = document_id

        self._state = ScanState.IDLE
        self._auto_scan = auto_scan
        self._latest: Optional[TextBuffer] = None
        self._pending = False
        self._closed = False
        self._generation = 0
        self._countdown: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None

        self.scans_started = 0
        self.scans_failed = 0

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def state(self) -> ScanState:
        return self._state

    @property
    def auto_scan(self) -> bool:
        return self._auto_scan

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def has_pending_changes(self) -> bool:
        return self._pending

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def text_changed(self, buffer: TextBuffer) -> None:
        """Record a new snapshot and (re)start the countdown when allowed."""
        if self._closed:
            return
        self._latest = buffer
        self._pending = True

        if self._state in (ScanState.SCANNING, ScanState.APPLYING_RESULTS):
            logger.debug(f"[{self.document_id}] Change during scan, countdown queued")
            return
        if not self._auto_scan:
            return
        self._start_countdown()

    def scan_now(self, buffer: Optional[TextBuffer] = None) -> bool:
        """
        Scan immediately, skipping the countdown.

        Returns:
            False when a scan is already in flight (the request is queued
            as a pending change instead) or the scheduler is closed
        """
        if self._closed:
            return False
        if buffer is not None:
            self._latest = buffer
        if self.in_flight:
            self._pending = True
            return False
        self._cancel_countdown()
        return self._launch()

    def set_auto_scan(self, enabled: bool) -> None:
        """Pause or resume automatic scanning."""
        if enabled == self._auto_scan:
            return
        self._auto_scan = enabled
        if not enabled:
            if self._state == ScanState.COUNTDOWN:
                self._cancel_countdown()
                self._state = ScanState.IDLE
            logger.info(f"[{self.document_id}] Auto-scan paused")
        else:
            logger.info(f"[{self.document_id}] Auto-scan resumed")
            if self._pending and self._state == ScanState.IDLE and not self._closed:
                self._start_countdown()

    def close(self) -> None:
        """Cancel timers and make any in-flight result stale."""
        if self._closed:
            return
        self._closed = True
        self._generation += 1
        self._cancel_countdown()
        self._pending = False
        self._state = ScanState.IDLE
        logger.debug(f"[{self.document_id}] Scheduler closed")

    async def wait_idle(self) -> None:
        """Wait for the in-flight scan (if any) to settle."""
        while self.in_flight:
            await asyncio.shield(self._task)

    async def __aenter__(self) -> "ScanScheduler":
        return self

    async def aclose(self) -> None:
        """Close, then wait for the in-flight scan to finish; its result is discarded."""
        self.close()
        task = self._task
        if task is not None and not task.done():
            await asyncio.gather(task, return_exceptions=True)

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _start_countdown(self) -> None:
        self._cancel_countdown()
        loop = _running_loop()
        if loop is None:
            # Blocking caller: the change stays pending until a loop drives us
            self._state = ScanState.IDLE
            return
        self._countdown = loop.call_later(self.interval, self._countdown_elapsed)
        self._state = ScanState.COUNTDOWN

    def _cancel_countdown(self) -> None:
        if self._countdown is not None:
            self._countdown.cancel()
            self._countdown = None

    def _countdown_elapsed(self) -> None:
        self._countdown = None
        if self._closed:
            return
        self._launch()

    def _launch(self) -> bool:
        loop = _running_loop()
        if self._latest is None or loop is None:
            self._state = ScanState.IDLE
            return False

        buffer = self._latest
        self._pending = False
        self._state = ScanState.SCANNING
        self.scans_started += 1
        self._task = loop.create_task(self._run(buffer, self._generation))
        self._task.add_done_callback(self._task_done)
        return True

    def _task_done(self, task: asyncio.Task) -> None:
        # Collect the outcome of every scan task
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"[{self.document_id}] Scan task crashed: {task.exception()}")
        if self._task is task:
            self._task = None

    async def _run(self, buffer: TextBuffer, generation: int) -> None:
        result: Optional[AnalysisResult] = None
        try:
            if self.scan_timeout:
                result = await asyncio.wait_for(self._analyze(buffer.text), self.scan_timeout)
            else:
                result = await self._analyze(buffer.text)
        except asyncio.CancelledError:
            raise
        except asyncio.TimeoutError:
            self._fail(AnalysisTransportFailure(f"Scan timed out after {self.scan_timeout}s"), generation)
        except Exception as e:
            self._fail(e, generation)

        if self._closed or generation != self._generation:
            logger.debug(f"[{self.document_id}] Discarding result of scan on v{buffer.version}")
            return

        try:
            if result is not None:
                self._state = ScanState.APPLYING_RESULTS
                try:
                    self._on_results(result, buffer)
                except Exception as e:
                    logger.error(f"[{self.document_id}] Applying scan results failed: {e}")
        finally:
            self._state = ScanState.IDLE
            if self._pending and self._auto_scan and not self._closed:
                self._start_countdown()

    def _fail(self, error: Exception, generation: int) -> None:
        self.scans_failed += 1
        if self._closed or generation != self._generation:
            return
        logger.warning(f"[{self.document_id}] Scan failed: {error}")
        if self._on_failure is not None:
            try:
                self._on_failure(error)
            except Exception as e:
                logger.warning(f"[{self.document_id}] Failure callback raised: {e}")


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None
