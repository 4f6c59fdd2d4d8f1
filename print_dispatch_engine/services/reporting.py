"""
ReportingService for the Print Dispatch Engine

Read-only counts for dashboards, operator notices, consumable warnings and
Prometheus metrics. Nothing here mutates jobs or printers.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Deque, Dict, List, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest

from ..models.job import JobStatus
from ..models.printer import PrinterHealth
from ..models.dispatch import DispatchState, LoopState, Notice, NoticeLevel
from ..services.job_store import JobStore
from ..services.printer_registry import PrinterRegistry
from ..services.eligibility import select_eligible, is_low_on_consumables
from ..utils.logger import get_logger, set_log_context
from ..core.exceptions import error_registry


class DispatchMetrics:
    """
    Prometheus metrics for one engine.

    Each instance owns its CollectorRegistry so several engines (or tests)
    can live in one process.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()

        self.jobs = Gauge(
            "print_dispatch_jobs",
            "Print jobs by status",
            ["status"],
            registry=self.registry
        )
        self.online_printers = Gauge(
            "print_dispatch_online_printers",
            "Printers reporting online",
            registry=self.registry
        )
        self.processed = Gauge(
            "print_dispatch_processed_jobs",
            "Jobs completed through the engine since the last counter reset",
            registry=self.registry
        )
        self.assignments_total = Counter(
            "print_dispatch_assignments_total",
            "Jobs assigned to printers",
            registry=self.registry
        )
        self.completions_total = Counter(
            "print_dispatch_completions_total",
            "Prints reported completed",
            registry=self.registry
        )
        self.failures_total = Counter(
            "print_dispatch_failures_total",
            "Prints reported failed",
            registry=self.registry
        )
        self.skipped_ticks_total = Counter(
            "print_dispatch_skipped_ticks_total",
            "Scheduler ticks skipped because a dispatch was still being applied",
            registry=self.registry
        )

    def record_assignment(self):
        self.assignments_total.inc()

    def record_completion(self):
        self.completions_total.inc()

    def record_failure(self):
        self.failures_total.inc()

    def record_skipped_tick(self):
        self.skipped_ticks_total.inc()

    def export(self) -> bytes:
        """Text exposition of all metrics."""
        return generate_latest(self.registry)


@dataclass
class DispatchReport:
    """Dashboard snapshot."""

    waiting_jobs: int
    printing_jobs: int
    completed_jobs: int
    online_printers: int
    eligible_printers: int
    total_printers: int
    processed_count: int
    max_concurrent_jobs: int
    mode: str
    loop_state: str
    generated_at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "waiting_jobs": self.waiting_jobs,
            "printing_jobs": self.printing_jobs,
            "completed_jobs": self.completed_jobs,
            "online_printers": self.online_printers,
            "eligible_printers": self.eligible_printers,
            "total_printers": self.total_printers,
            "processed_count": self.processed_count,
            "max_concurrent_jobs": self.max_concurrent_jobs,
            "mode": self.mode,
            "loop_state": self.loop_state,
            "generated_at": self.generated_at.isoformat()
        }


class ReportingService:
    """
    Outbound, read-only reporting.

    Provides capabilities for:
    - Job and printer counts for dashboards
    - Operator notices (failed prints, printers in error)
    - Low-consumable warnings, computed on demand
    - Prometheus exposition
    """

    def __init__(
        self,
        job_store: JobStore,
        printer_registry: PrinterRegistry,
        state: DispatchState,
        threshold_provider: Callable[[], float],
        loop_state_provider: Callable[[], LoopState],
        metrics: Optional[DispatchMetrics] = None,
        notice_history: int = 100
    ):
        self.job_store = job_store
        self.printer_registry = printer_registry
        self.state = state
        self.threshold_provider = threshold_provider
        self.loop_state_provider = loop_state_provider
        self.metrics = metrics or DispatchMetrics()
        self._notices: Deque[Notice] = deque(maxlen=notice_history)

        self.logger = get_logger(__name__)
        set_log_context(self.logger, component="reporting")

    def record_notice(self, notice: Notice) -> None:
        """Keep an operator notice; the oldest is dropped when full."""
        self._notices.append(notice)
        self.logger.info("Operator notice recorded", extra={
            "kind": notice.kind,
            "level": notice.level.value,
            "job_id": notice.job_id,
            "printer_id": notice.printer_id
        })

    def get_notices(self, limit: Optional[int] = None) -> List[Notice]:
        """Most recent notices first."""
        notices = list(reversed(self._notices))
        return notices[:limit] if limit is not None else notices

    def clear_notices(self) -> None:
        self._notices.clear()

    def consumable_warnings(self) -> List[Notice]:
        """Warnings for online printers whose paper or ink is at or below the threshold."""
        threshold = self.threshold_provider()
        warnings = []
        for printer in self.printer_registry.list_printers():
            if printer.health == PrinterHealth.ONLINE and is_low_on_consumables(printer, threshold):
                warnings.append(Notice(
                    level=NoticeLevel.WARNING,
                    kind="low_consumables",
                    message=(
                        f"Printer {printer.printer_id} is low on consumables "
                        f"(paper {printer.consumables.paper_level:.0f}%, ink {printer.consumables.ink_level:.0f}%)"
                    ),
                    printer_id=printer.printer_id
                ))
        return warnings

    def get_report(self) -> DispatchReport:
        """Current counts. Job and printer figures may come from slightly different instants."""
        job_counts = self.job_store.count_by_status()
        printers = self.printer_registry.list_printers()
        online = sum(1 for p in printers if p.health == PrinterHealth.ONLINE)

        report = DispatchReport(
            waiting_jobs=job_counts[JobStatus.WAITING],
            printing_jobs=job_counts[JobStatus.PRINTING],
            completed_jobs=job_counts[JobStatus.COMPLETED],
            online_printers=online,
            eligible_printers=len(select_eligible(printers, self.threshold_provider())),
            total_printers=len(printers),
            processed_count=self.state.processed_count,
            max_concurrent_jobs=self.state.max_concurrent_jobs,
            mode=self.state.mode.value,
            loop_state=self.loop_state_provider().value
        )
        self._update_gauges(report)
        return report

    def get_error_statistics(self) -> Dict[str, Any]:
        return error_registry.get_error_statistics()

    def export_metrics(self) -> bytes:
        """Refresh gauges and return the Prometheus text exposition."""
        self.get_report()
        return self.metrics.export()

    def _update_gauges(self, report: DispatchReport) -> None:
        self.metrics.jobs.labels(status=JobStatus.WAITING.value).set(report.waiting_jobs)
        self.metrics.jobs.labels(status=JobStatus.PRINTING.value).set(report.printing_jobs)
        self.metrics.jobs.labels(status=JobStatus.COMPLETED.value).set(report.completed_jobs)
        self.metrics.online_printers.set(report.online_printers)
        self.metrics.processed.set(report.processed_count)
