"""
Dispatcher core for the Print Dispatch Engine

Pairs waiting jobs with eligible printers under the concurrency ceiling and
applies each pairing as one indivisible status + occupancy update.
"""

import threading
from collections import deque
from typing import List, Optional, Sequence, TYPE_CHECKING

from ..models.job import PrintJob, JobStatus
from ..models.printer import PrinterDevice, DEFAULT_CONSUMABLE_THRESHOLD
from ..models.dispatch import Assignment, DispatchResult, DispatchState, NoDispatchReason
from ..services.job_store import JobStore
from ..services.printer_registry import PrinterRegistry
from ..services.eligibility import select_eligible
from ..utils.logger import get_logger, set_log_context, LoggerContext
from ..core.exceptions import PrintDispatchError

if TYPE_CHECKING:
    from ..services.completion_monitor import CompletionMonitor
    from ..services.reporting import DispatchMetrics


def dispatch_once(
    waiting_jobs: Sequence[PrintJob],
    eligible_printers: Sequence[PrinterDevice],
    currently_printing_count: int,
    max_concurrent_jobs: int
) -> List[Assignment]:
    """
    Plan one dispatch round.

    Jobs are taken in the given (FIFO) order and each takes the head of the
    priority-sorted printer list. Planning stops when printers run out or
    the concurrency budget is spent. Jobs that are not waiting and printers
    that are already occupied are skipped, so a stale snapshot cannot
    double-assign.

    Args:
        waiting_jobs: Waiting jobs, earliest submission first
        eligible_printers: Eligible printers, most preferred first
        currently_printing_count: Jobs already printing
        max_concurrent_jobs: Concurrency ceiling

    Returns:
        Assignments in job order; empty when nothing can be assigned
    """
    budget = max_concurrent_jobs - currently_printing_count
    if budget <= 0:
        return []

    printers = deque()
    seen_printers = set()
    for printer in eligible_printers:
        if printer.current_job_id is None and printer.printer_id not in seen_printers:
            seen_printers.add(printer.printer_id)
            printers.append(printer)

    assignments: List[Assignment] = []
    seen_jobs = set()
    for job in waiting_jobs:
        if len(assignments) >= budget or not printers:
            break
        if job.status != JobStatus.WAITING or job.job_id in seen_jobs:
            continue
        seen_jobs.add(job.job_id)
        printer = printers.popleft()
        assignments.append(Assignment(job_id=job.job_id, printer_id=printer.printer_id))

    return assignments


class Dispatcher:
    """
    Runs dispatch rounds against the live job store and printer registry.

    All reads and writes of a round happen under the shared assignment lock,
    so no observer holding that lock sees a job printing without its printer
    occupied, or the reverse.
    """

    def __init__(
        self,
        job_store: JobStore,
        printer_registry: PrinterRegistry,
        state: DispatchState,
        threshold: float = DEFAULT_CONSUMABLE_THRESHOLD,
        assignment_lock: Optional[threading.RLock] = None,
        completion_monitor: Optional["CompletionMonitor"] = None,
        metrics: Optional["DispatchMetrics"] = None
    ):
        self.job_store = job_store
        self.printer_registry = printer_registry
        self.state = state
        self.threshold = threshold
        self.assignment_lock = assignment_lock or threading.RLock()
        self.completion_monitor = completion_monitor
        self.metrics = metrics

        self.logger = get_logger(__name__)
        set_log_context(self.logger, component="dispatcher")

    def plan(self) -> DispatchResult:
        """Compute the next round's assignments without applying them."""
        with self.assignment_lock:
            waiting, printing_count, eligible = self._snapshot()
            assignments = dispatch_once(waiting, eligible, printing_count, self.state.max_concurrent_jobs)
            return DispatchResult(
                assignments=assignments,
                waiting_count=len(waiting),
                printing_count=printing_count,
                reason=None if assignments else self._no_dispatch_reason(waiting, eligible, printing_count)
            )

    def run_once(self) -> DispatchResult:
        """
        Plan and apply one dispatch round.

        Returns:
            DispatchResult listing the assignments actually applied
        """
        with self.assignment_lock:
            waiting, printing_count, eligible = self._snapshot()
            planned = dispatch_once(waiting, eligible, printing_count, self.state.max_concurrent_jobs)

            applied = [a for a in planned if self._apply(a)]

            result = DispatchResult(
                assignments=applied,
                waiting_count=len(waiting) - len(applied),
                printing_count=printing_count + len(applied),
                reason=None if applied else self._no_dispatch_reason(waiting, eligible, printing_count)
            )

        if applied:
            self.logger.info("Dispatch round applied", extra={
                "assigned": len(applied),
                "waiting_count": result.waiting_count,
                "printing_count": result.printing_count
            })
        else:
            self.logger.debug("Dispatch round made no assignments", extra={
                "reason": result.reason.value if result.reason else None,
                "waiting_count": result.waiting_count
            })
        return result

    def _snapshot(self):
        jobs = self.job_store.list_jobs()
        waiting = [j for j in jobs if j.status == JobStatus.WAITING]
        printing_count = sum(1 for j in jobs if j.status == JobStatus.PRINTING)
        eligible = select_eligible(self.printer_registry.list_printers(), self.threshold)
        return waiting, printing_count, eligible

    def _no_dispatch_reason(self, waiting: Sequence[PrintJob], eligible: Sequence[PrinterDevice],
                            printing_count: int) -> NoDispatchReason:
        if not waiting:
            return NoDispatchReason.NO_WAITING_JOBS
        if printing_count >= self.state.max_concurrent_jobs:
            return NoDispatchReason.CONCURRENCY_LIMIT
        return NoDispatchReason.NO_ELIGIBLE_PRINTERS

    def _apply(self, assignment: Assignment) -> bool:
        """Apply both halves of an assignment, or neither."""
        with LoggerContext(self.logger, job_id=assignment.job_id, printer_id=assignment.printer_id):
            try:
                self.printer_registry.set_occupancy(assignment.printer_id, assignment.job_id)
            except PrintDispatchError as e:
                self.logger.warning("Printer could not be occupied, assignment dropped", extra={
                    "error": e.message
                })
                return False

            try:
                self.job_store.set_job_status(
                    assignment.job_id, JobStatus.PRINTING, printer_id=assignment.printer_id
                )
            except PrintDispatchError as e:
                self.printer_registry.set_occupancy(assignment.printer_id, None)
                self.logger.warning("Job could not be started, assignment rolled back", extra={
                    "error": e.message
                })
                return False

            if self.completion_monitor is not None:
                self.completion_monitor.track(assignment)
            if self.metrics is not None:
                self.metrics.record_assignment()

            self.logger.info("Job assigned to printer")
            return True
