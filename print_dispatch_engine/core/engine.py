"""
Main DispatchEngine class that coordinates all services

Provides the operator controls (mode, dispatch-all, counters, limits), the
executor callbacks, and read-only reporting for one printer fleet.
"""

import threading
from typing import Any, Dict, Iterable, List, Optional, Union

from ..models.job import JobStatus, PrintJob, PrintFile
from ..models.printer import PrinterDevice, PrinterHealth
from ..models.dispatch import DispatchMode, DispatchResult, DispatchState, Notice, SweepResult
from ..executors.base import BasePrintExecutor
from ..executors.manual import ManualPrintExecutor
from ..executors.simulated import SimulatedPrintExecutor
from ..discovery.base import PrinterDiscovery
from ..discovery.static import StaticPrinterDiscovery
from ..services.job_store import JobStore
from ..services.printer_registry import PrinterRegistry
from ..services.dispatcher import Dispatcher
from ..services.completion_monitor import CompletionMonitor
from ..services.scheduler import SchedulingLoop
from ..services.reporting import DispatchMetrics, DispatchReport, ReportingService
from ..utils.logger import get_logger, set_log_context
from .config import DispatchConfig, FleetConfig
from .exceptions import ConfigurationError, DispatchError, error_registry


class DispatchEngine:
    """
    Main engine class that coordinates all services.

    Provides a unified interface for:
    - Operator controls (mode, dispatch-all, processed counter, concurrency limit)
    - Job submission and operator overrides (pause, mark done)
    - Printer fleet updates and discovery refresh
    - Print executor callbacks
    - Dashboard reporting and metrics
    """

    def __init__(
        self,
        config: Optional[DispatchConfig] = None,
        job_store: Optional[JobStore] = None,
        printer_registry: Optional[PrinterRegistry] = None,
        executor: Optional[BasePrintExecutor] = None,
        discovery: Optional[PrinterDiscovery] = None
    ):
        """
        Initialize the DispatchEngine.

        Args:
            config: Dispatch settings; defaults apply when omitted
            job_store: Job store to dispatch from
            printer_registry: Printer fleet
            executor: Print executor; a ManualPrintExecutor by default
            discovery: Optional printer discovery used by refresh_printers
        """
        self.config = config or DispatchConfig()
        self.job_store = job_store or JobStore()
        self.printer_registry = printer_registry or PrinterRegistry()
        self.executor = executor or ManualPrintExecutor()
        self.discovery = discovery

        self.state = DispatchState(
            max_concurrent_jobs=self.config.max_concurrent_jobs,
            mode=self.config.mode
        )

        # Guards every status + occupancy change and consistent cross-store reads
        self._assignment_lock = threading.RLock()

        self.metrics = DispatchMetrics()
        self.reporting = ReportingService(
            self.job_store,
            self.printer_registry,
            self.state,
            threshold_provider=lambda: self.config.consumable_threshold,
            loop_state_provider=lambda: self.scheduler.state,
            metrics=self.metrics,
            notice_history=self.config.notice_history
        )
        self.completion_monitor = CompletionMonitor(
            self.job_store,
            self.printer_registry,
            self.state,
            assignment_lock=self._assignment_lock,
            metrics=self.metrics,
            notice_sink=self.reporting.record_notice
        )
        self.dispatcher = Dispatcher(
            self.job_store,
            self.printer_registry,
            self.state,
            threshold=self.config.consumable_threshold,
            assignment_lock=self._assignment_lock,
            completion_monitor=self.completion_monitor,
            metrics=self.metrics
        )
        self.scheduler = SchedulingLoop(
            self.dispatcher,
            self.completion_monitor,
            self.executor,
            self.job_store,
            self.printer_registry,
            tick_interval=self.config.tick_interval_seconds,
            metrics=self.metrics
        )

        self.executor.bind(self.on_job_completed, self.on_job_failed)
        self._is_running = False

        self.logger = get_logger(__name__)
        set_log_context(self.logger, component="engine")

    @classmethod
    def from_config(cls, fleet: FleetConfig, executor: Optional[BasePrintExecutor] = None) -> "DispatchEngine":
        """
        Build an engine from a fleet configuration.

        The configured printers are registered and also serve as the static
        discovery source; seed jobs are submitted in file order. Without an
        explicit executor a SimulatedPrintExecutor is used.
        """
        printers = fleet.build_printers()
        engine = cls(
            config=fleet.dispatch,
            printer_registry=PrinterRegistry(printers),
            executor=executor or SimulatedPrintExecutor(fleet.simulation.model_dump()),
            discovery=StaticPrinterDiscovery(printers)
        )
        for seed in fleet.build_job_seeds():
            engine.submit_job(**seed)
        return engine

    async def start(self):
        """Start the executor and, in auto mode, the scheduling loop."""
        if self._is_running:
            return
        self.logger.info("Starting DispatchEngine", extra={
            "mode": self.state.mode.value,
            "max_concurrent_jobs": self.state.max_concurrent_jobs,
            "executor": self.executor.executor_name,
            "printers": len(self.printer_registry)
        })

        await self.executor.start()
        if self.discovery is not None:
            # A fixed source only contributes printers the registry lacks
            await self.refresh_printers(add_only=not self.discovery.reports_live_state)
        if self.state.mode == DispatchMode.AUTO:
            await self.scheduler.start()

        self._is_running = True
        self.logger.info("DispatchEngine started successfully")

    async def stop(self):
        """Stop scheduling and shut the executor down."""
        self.logger.info("Stopping DispatchEngine")

        for name, step in (("scheduler", self.scheduler.stop), ("executor", self.executor.shutdown)):
            try:
                await step()
            except Exception:
                self.logger.error(f"Error stopping {name}", exc_info=True)

        self._is_running = False
        self.logger.info("DispatchEngine stopped")

    async def __aenter__(self) -> "DispatchEngine":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()

    def is_running(self) -> bool:
        return self._is_running

    # Operator controls
    async def set_mode(self, mode: Union[DispatchMode, str]) -> DispatchMode:
        """
        Switch between auto and manual scheduling.

        Switching to manual stops future ticks only; printing jobs carry on.
        """
        try:
            mode = DispatchMode(mode)
        except ValueError:
            raise ConfigurationError("mode", f"unknown mode {mode!r}")

        previous = self.state.mode
        self.state.mode = mode
        if self._is_running:
            if mode == DispatchMode.AUTO:
                await self.scheduler.start()
            else:
                await self.scheduler.stop()

        if previous != mode:
            self.logger.info("Dispatch mode changed", extra={
                "from_mode": previous.value,
                "to_mode": mode.value
            })
        return mode

    async def dispatch_now_all(self, timeout: Optional[float] = None) -> SweepResult:
        """
        Manual dispatch-all: sweep the whole waiting queue.

        Raises:
            DispatchError: If the engine is not running
        """
        self._require_running("dispatch_now_all")
        return await self.scheduler.sweep(timeout=timeout)

    async def dispatch_once(self) -> Optional[DispatchResult]:
        """Run a single dispatch round now; None if one is already being applied."""
        self._require_running("dispatch_once")
        return await self.scheduler.tick()

    def plan(self) -> DispatchResult:
        """Preview the next round's assignments without applying anything."""
        return self.dispatcher.plan()

    def reset_processed_count(self) -> int:
        """Reset the processed counter; returns the value before the reset."""
        with self._assignment_lock:
            previous = self.state.processed_count
            self.state.processed_count = 0
        self.logger.info("Processed counter reset", extra={"previous_count": previous})
        return previous

    def set_concurrency_limit(self, limit: int) -> int:
        """
        Change the concurrency ceiling. Applies from the next round; jobs
        already printing are never preempted.

        Raises:
            ConfigurationError: If the limit is not a positive integer
        """
        if isinstance(limit, bool) or not isinstance(limit, int):
            raise ConfigurationError("max_concurrent_jobs", "must be an integer")
        try:
            self.config = self.config.with_updates(max_concurrent_jobs=limit)
        except ConfigurationError as e:
            error_registry.record_error(e)
            raise

        with self._assignment_lock:
            previous = self.state.max_concurrent_jobs
            self.state.max_concurrent_jobs = limit
        self.logger.info("Concurrency limit changed", extra={"from_limit": previous, "to_limit": limit})
        return limit

    def set_consumable_threshold(self, threshold: float) -> float:
        """
        Change the consumable threshold used by the eligibility filter.

        Raises:
            ConfigurationError: If the threshold is outside [0, 100]
        """
        try:
            self.config = self.config.with_updates(consumable_threshold=threshold)
        except ConfigurationError as e:
            error_registry.record_error(e)
            raise
        self.dispatcher.threshold = self.config.consumable_threshold
        self.logger.info("Consumable threshold changed", extra={"threshold": self.config.consumable_threshold})
        return self.config.consumable_threshold

    # Job interface
    def submit_job(self, owner_name: str, files: Optional[Iterable[PrintFile]] = None,
                   notes: Optional[str] = None, job_id: Optional[str] = None) -> PrintJob:
        """Add a waiting job to the queue."""
        return self.job_store.submit_job(owner_name, files=files, notes=notes, job_id=job_id)

    def remove_job(self, job_id: str) -> PrintJob:
        """Administrative deletion of a job that is not printing."""
        return self.job_store.remove_job(job_id)

    def get_job(self, job_id: str) -> PrintJob:
        return self.job_store.get_job(job_id)

    def list_jobs(self, status: Optional[JobStatus] = None) -> List[PrintJob]:
        return self.job_store.list_jobs(status)

    async def pause_job(self, job_id: str) -> bool:
        """
        Operator pause: return a printing job to the queue and free its
        printer immediately. The executor is asked to stop the print.
        """
        if self.completion_monitor.release_job(job_id) is None:
            return False
        try:
            await self.executor.cancel(job_id)
        except Exception:
            self.logger.error("Executor failed to cancel paused job", extra={"job_id": job_id}, exc_info=True)
        return True

    def complete_job(self, job_id: str) -> bool:
        """Operator override: mark a printing job done."""
        return self.completion_monitor.complete_job(job_id)

    # Executor callbacks
    def on_job_completed(self, job_id: str) -> bool:
        return self.completion_monitor.on_job_completed(job_id)

    def on_job_failed(self, job_id: str, reason: str) -> bool:
        return self.completion_monitor.on_job_failed(job_id, reason)

    # Printer interface
    def register_printer(self, printer: PrinterDevice) -> PrinterDevice:
        return self.printer_registry.register_printer(printer)

    def deregister_printer(self, printer_id: str) -> PrinterDevice:
        return self.printer_registry.deregister_printer(printer_id)

    def set_printer_health(self, printer_id: str, health: Union[PrinterHealth, str]) -> PrinterDevice:
        """Update printer health, e.g. clear an error after the operator fixed a jam."""
        return self.printer_registry.set_health(printer_id, PrinterHealth(health))

    def update_consumables(self, printer_id: str, paper_level: Optional[float] = None,
                           ink_level: Optional[float] = None) -> PrinterDevice:
        return self.printer_registry.update_consumables(printer_id, paper_level=paper_level, ink_level=ink_level)

    async def refresh_printers(self, add_only: bool = False) -> Dict[str, Any]:
        """
        Run discovery and merge the result into the registry.

        Args:
            add_only: Only register printers the registry does not know yet
        """
        if self.discovery is None:
            raise DispatchError("no printer discovery configured")
        discovered = await self.discovery.discover()
        with self._assignment_lock:
            return self.printer_registry.refresh(discovered, add_only=add_only)

    # Reporting
    def get_report(self) -> DispatchReport:
        return self.reporting.get_report()

    def get_notices(self, limit: Optional[int] = None) -> List[Notice]:
        return self.reporting.get_notices(limit)

    def export_metrics(self) -> bytes:
        return self.reporting.export_metrics()

    def snapshot(self) -> Dict[str, Any]:
        """Jobs and printers read together under the assignment lock."""
        with self._assignment_lock:
            return {
                "jobs": [j.to_dict() for j in self.job_store.list_jobs()],
                "printers": [p.to_dict() for p in self.printer_registry.list_printers()],
                "state": self.state.to_dict()
            }

    def _require_running(self, operation: str):
        if not self._is_running:
            raise DispatchError(f"engine must be started before {operation}")
