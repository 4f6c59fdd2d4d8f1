"""
CompletionMonitor service for the Print Dispatch Engine

Tracks in-flight prints and applies the completion, failure and operator
release signals that end them. Late or duplicate signals are logged and
ignored.
"""

import asyncio
import threading
from typing import Callable, Dict, List, Optional, TYPE_CHECKING

from ..models.job import JobStatus
from ..models.printer import PrinterHealth
from ..models.dispatch import Assignment, DispatchState, InFlightPrint, Notice, NoticeLevel
from ..services.job_store import JobStore
from ..services.printer_registry import PrinterRegistry
from ..utils.logger import get_logger, set_log_context, LoggerContext
from ..core.exceptions import JobNotFoundError, PrintDispatchError

if TYPE_CHECKING:
    from ..services.reporting import DispatchMetrics


class CompletionMonitor:
    """
    Ends in-flight prints.

    Provides capabilities for:
    - In-flight print tracking
    - Completion handling (job completed, printer freed, processed count)
    - Failure handling (job requeued, printer put in error)
    - Operator release of a printing job back to the queue
    - Waking sweeps that wait for the next signal
    """

    def __init__(
        self,
        job_store: JobStore,
        printer_registry: PrinterRegistry,
        state: DispatchState,
        assignment_lock: Optional[threading.RLock] = None,
        metrics: Optional["DispatchMetrics"] = None,
        notice_sink: Optional[Callable[[Notice], None]] = None
    ):
        self.job_store = job_store
        self.printer_registry = printer_registry
        self.state = state
        self.assignment_lock = assignment_lock or threading.RLock()
        self.metrics = metrics
        self.notice_sink = notice_sink

        self._in_flight: Dict[str, InFlightPrint] = {}
        self._signal_count = 0
        self._signal = asyncio.Event()

        self.logger = get_logger(__name__)
        set_log_context(self.logger, component="completion_monitor")

    def track(self, assignment: Assignment) -> InFlightPrint:
        """Start tracking an applied assignment."""
        with self.assignment_lock:
            record = InFlightPrint(job_id=assignment.job_id, printer_id=assignment.printer_id)
            self._in_flight[assignment.job_id] = record
            return record

    def in_flight(self) -> List[InFlightPrint]:
        with self.assignment_lock:
            return list(self._in_flight.values())

    def printer_for(self, job_id: str) -> Optional[str]:
        with self.assignment_lock:
            record = self._in_flight.get(job_id)
            return record.printer_id if record else None

    @property
    def signal_count(self) -> int:
        """Number of completion/failure/release signals applied so far."""
        return self._signal_count

    def on_job_completed(self, job_id: str) -> bool:
        """
        Handle a completion signal from the print executor.

        Returns:
            True if the job was printing and is now completed
        """
        with LoggerContext(self.logger, job_id=job_id):
            with self.assignment_lock:
                printer_id = self._printing_printer(job_id, "completion")
                if printer_id is False:
                    return False

                self.job_store.set_job_status(job_id, JobStatus.COMPLETED)
                self._free_printer(printer_id)
                self._in_flight.pop(job_id, None)
                self.state.processed_count += 1
                processed = self.state.processed_count

            if self.metrics is not None:
                self.metrics.record_completion()
            self.logger.info("Print completed", extra={
                "printer_id": printer_id,
                "processed_count": processed
            })
            self._notify()
            return True

    def on_job_failed(self, job_id: str, reason: str) -> bool:
        """
        Handle a failure signal from the print executor.

        The job goes back to waiting at its original queue position and the
        printer is put in error until an operator clears it.

        Returns:
            True if the job was printing and has been requeued
        """
        with LoggerContext(self.logger, job_id=job_id):
            with self.assignment_lock:
                printer_id = self._printing_printer(job_id, "failure")
                if printer_id is False:
                    return False

                self.job_store.set_job_status(job_id, JobStatus.WAITING, reason=reason)
                self._free_printer(printer_id)
                if printer_id is not None and self.printer_registry.has_printer(printer_id):
                    self.printer_registry.set_health(printer_id, PrinterHealth.ERROR)
                self._in_flight.pop(job_id, None)

            if self.metrics is not None:
                self.metrics.record_failure()
            self.logger.warning("Print failed, job requeued", extra={
                "printer_id": printer_id,
                "reason": reason
            })
            self._emit(Notice(
                level=NoticeLevel.WARNING,
                kind="job_failed",
                message=f"Job {job_id} failed ({reason}) and is waiting again",
                job_id=job_id,
                printer_id=printer_id
            ))
            if printer_id is not None:
                self._emit(Notice(
                    level=NoticeLevel.ERROR,
                    kind="printer_error",
                    message=f"Printer {printer_id} needs attention: {reason}",
                    job_id=job_id,
                    printer_id=printer_id
                ))
            self._notify()
            return True

    def release_job(self, job_id: str) -> Optional[str]:
        """
        Operator pause: move a printing job back to waiting and free its
        printer immediately. Printer health is left alone.

        Returns:
            The freed printer id, or None if the job was not printing
        """
        with LoggerContext(self.logger, job_id=job_id):
            with self.assignment_lock:
                printer_id = self._printing_printer(job_id, "release")
                if printer_id is False:
                    return None

                self.job_store.set_job_status(job_id, JobStatus.WAITING, reason="paused by operator")
                self._free_printer(printer_id)
                self._in_flight.pop(job_id, None)

            self.logger.info("Printing job released by operator", extra={"printer_id": printer_id})
            self._notify()
            return printer_id

    def complete_job(self, job_id: str) -> bool:
        """Operator "mark done" override; counts toward the processed total."""
        self.logger.info("Operator marked job completed", extra={"job_id": job_id})
        return self.on_job_completed(job_id)

    async def wait_for_signal(self, since: int, timeout: Optional[float] = None) -> bool:
        """
        Suspend until more than ``since`` signals have been applied.

        Returns:
            True if a new signal arrived, False on timeout
        """
        async def _wait():
            while self._signal_count <= since:
                await self._signal.wait()

        if timeout is None:
            await _wait()
            return True
        try:
            await asyncio.wait_for(_wait(), timeout)
            return True
        except asyncio.TimeoutError:
            return False

    def _printing_printer(self, job_id: str, signal: str):
        """
        Resolve the printer of a printing job.

        Returns False (after logging) when the signal does not apply.
        """
        try:
            job = self.job_store.get_job(job_id)
        except JobNotFoundError:
            self.logger.warning("Signal for unknown job ignored", extra={"signal": signal})
            return False

        if job.status != JobStatus.PRINTING:
            self.logger.warning("Signal for job that is not printing ignored", extra={
                "signal": signal,
                "status": job.status.value
            })
            return False

        record = self._in_flight.get(job_id)
        return record.printer_id if record else job.printer_id

    def _free_printer(self, printer_id: Optional[str]) -> None:
        if printer_id is None:
            return
        try:
            self.printer_registry.set_occupancy(printer_id, None)
        except PrintDispatchError as e:
            self.logger.warning("Printer occupancy could not be cleared", extra={
                "printer_id": printer_id,
                "error": e.message
            })

    def _emit(self, notice: Notice) -> None:
        if self.notice_sink is not None:
            self.notice_sink(notice)

    def _notify(self) -> None:
        self._signal_count += 1
        signal, self._signal = self._signal, asyncio.Event()
        signal.set()
