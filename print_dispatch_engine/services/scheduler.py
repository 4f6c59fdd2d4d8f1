"""
SchedulingLoop service for the Print Dispatch Engine

Drives the dispatcher either on a recurring timer (auto mode) or as a
one-shot sweep that runs the same algorithm until the waiting queue is
exhausted (manual mode), and hands applied assignments to the executor.
"""

import asyncio
from typing import List, Optional

from ..models.job import JobStatus
from ..models.dispatch import Assignment, DispatchResult, LoopState, SweepResult
from ..executors.base import BasePrintExecutor
from ..services.dispatcher import Dispatcher
from ..services.completion_monitor import CompletionMonitor
from ..services.job_store import JobStore
from ..services.printer_registry import PrinterRegistry
from ..services.reporting import DispatchMetrics
from ..utils.logger import get_logger, set_log_context, LoggerContext
from ..core.exceptions import PrintDispatchError, error_registry


class SchedulingLoop:
    """
    Timing and triggering layer around the dispatcher.

    Only one dispatch is applied at a time. A timer tick that finds one in
    progress is skipped, never queued; a sweep round waits for it instead.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        completion_monitor: CompletionMonitor,
        executor: BasePrintExecutor,
        job_store: JobStore,
        printer_registry: PrinterRegistry,
        tick_interval: float = 2.0,
        metrics: Optional[DispatchMetrics] = None
    ):
        self.dispatcher = dispatcher
        self.completion_monitor = completion_monitor
        self.executor = executor
        self.job_store = job_store
        self.printer_registry = printer_registry
        self.tick_interval = tick_interval
        self.metrics = metrics

        self.tick_count = 0
        self.skipped_ticks = 0

        self._apply_lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()

        self.logger = get_logger(__name__)
        set_log_context(self.logger, component="scheduling_loop")

    @property
    def state(self) -> LoopState:
        if self._apply_lock.locked():
            return LoopState.DISPATCHING
        if self.is_running:
            return LoopState.IDLE
        return LoopState.STOPPED

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self):
        """Start the recurring timer. Starting a running loop is a no-op."""
        if self.is_running:
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run())
        self.logger.info("Scheduling loop started", extra={"tick_interval": self.tick_interval})

    async def stop(self):
        """
        Stop future ticks. A tick already applying its assignments finishes;
        jobs already printing are unaffected.
        """
        if self._task is None:
            return
        self._stop_event.set()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        finally:
            self._task = None
        self.logger.info("Scheduling loop stopped", extra={
            "tick_count": self.tick_count,
            "skipped_ticks": self.skipped_ticks
        })

    async def tick(self) -> Optional[DispatchResult]:
        """
        Run one dispatch round and submit its assignments.

        Returns:
            The round's result, or None if skipped because another dispatch
            was still being applied
        """
        if self._apply_lock.locked():
            self.skipped_ticks += 1
            if self.metrics is not None:
                self.metrics.record_skipped_tick()
            self.logger.debug("Tick skipped, dispatch still in progress")
            return None

        async with self._apply_lock:
            self.tick_count += 1
            return await self._dispatch_and_submit()

    async def sweep(self, timeout: Optional[float] = None) -> SweepResult:
        """
        Dispatch the whole waiting queue.

        Rounds repeat, waiting for prints to finish in between, until no job
        waits or no round can assign anything while nothing is printing.

        Args:
            timeout: Optional bound on the total time spent waiting for prints

        Returns:
            SweepResult with every assignment made and the jobs still waiting
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout if timeout is not None else None
        result = SweepResult()

        self.logger.info("Dispatch sweep started", extra={
            "waiting_count": len(self.job_store.list_jobs(JobStatus.WAITING))
        })

        while True:
            since = self.completion_monitor.signal_count
            async with self._apply_lock:
                round_result = await self._dispatch_and_submit()
            result.rounds += 1
            result.assignments.extend(round_result.assignments)

            counts = self.job_store.count_by_status()
            if counts[JobStatus.WAITING] == 0:
                break
            if counts[JobStatus.PRINTING] == 0:
                if round_result.assignments:
                    # Everything assigned this round already failed back; try the remaining printers
                    continue
                result.exhausted = True
                break

            remaining = None
            if deadline is not None:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    result.timed_out = True
                    break
            if not await self.completion_monitor.wait_for_signal(since, remaining):
                result.timed_out = True
                break

        result.still_waiting = [j.job_id for j in self.job_store.list_jobs(JobStatus.WAITING)]
        self.logger.info("Dispatch sweep finished", extra={
            "assigned": len(result.assignments),
            "rounds": result.rounds,
            "still_waiting": len(result.still_waiting),
            "exhausted": result.exhausted,
            "timed_out": result.timed_out
        })
        return result

    async def _dispatch_and_submit(self) -> DispatchResult:
        result = self.dispatcher.run_once()
        await self._submit(result.assignments)
        return result

    async def _submit(self, assignments: List[Assignment]):
        """Hand applied assignments to the executor; a refused submission is a failed print."""
        for assignment in assignments:
            with LoggerContext(self.logger, job_id=assignment.job_id, printer_id=assignment.printer_id):
                try:
                    job = self.job_store.get_job(assignment.job_id)
                    printer = self.printer_registry.get_printer(assignment.printer_id)
                    await self.executor.submit_for_printing(job, printer)
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    if isinstance(e, PrintDispatchError):
                        error_registry.record_error(e)
                    self.logger.error("Executor rejected assignment", exc_info=True)
                    self.completion_monitor.on_job_failed(assignment.job_id, f"submission failed: {e}")

    async def _run(self):
        """Main timer loop."""
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.tick_interval)
                break
            except asyncio.TimeoutError:
                pass

            try:
                await self.tick()
            except Exception:
                self.logger.error("Error in scheduling loop tick", exc_info=True)
