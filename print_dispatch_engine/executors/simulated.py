"""
Simulated print executor.

Stands in for real printers in demos and the CLI: each job "prints" for a
fixed time derived from its file count, then reports completion. Failures
can be scheduled per job or per printer.
"""

import asyncio
from datetime import datetime
from typing import Any, Dict, Optional

from .base import BasePrintExecutor
from ..models.job import PrintJob
from ..models.printer import PrinterDevice
from ..core.exceptions import ExecutorError


class SimulatedPrintExecutor(BasePrintExecutor):
    """
    Timer-based executor.

    Print time is ``base_seconds + seconds_per_file * len(job.files)``.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        self.base_seconds = float(self.config.get("base_seconds", 0.5))
        self.seconds_per_file = float(self.config.get("seconds_per_file", 1.0))
        self.active_jobs: Dict[str, asyncio.Task] = {}
        self._job_failures: Dict[str, str] = {}
        self._printer_failures: Dict[str, str] = {}
        self._accepting = False

    async def start(self) -> None:
        self._accepting = True
        self.logger.info("Simulated print executor started", extra={
            "base_seconds": self.base_seconds,
            "seconds_per_file": self.seconds_per_file
        })

    async def shutdown(self) -> None:
        self._accepting = False
        for job_id in list(self.active_jobs.keys()):
            await self.cancel(job_id)
        self.logger.info("Simulated print executor shut down")

    def fail_job(self, job_id: str, reason: str) -> None:
        """Make the next print of ``job_id`` fail with ``reason``."""
        self._job_failures[job_id] = reason

    def fail_printer(self, printer_id: str, reason: str) -> None:
        """Make the next print on ``printer_id`` fail with ``reason``."""
        self._printer_failures[printer_id] = reason

    def estimate_seconds(self, job: PrintJob) -> float:
        return self.base_seconds + self.seconds_per_file * len(job.files)

    async def submit_for_printing(self, job: PrintJob, printer: PrinterDevice) -> None:
        if not self._accepting:
            raise ExecutorError(job.job_id, "executor is not running", printer.printer_id)
        if job.job_id in self.active_jobs:
            raise ExecutorError(job.job_id, "job is already printing", printer.printer_id)

        duration = self.estimate_seconds(job)
        self.active_jobs[job.job_id] = asyncio.create_task(
            self._print(job.job_id, printer.printer_id, duration)
        )
        self.logger.info("Simulated print started", extra={
            "job_id": job.job_id,
            "printer_id": printer.printer_id,
            "duration_seconds": duration
        })

    async def cancel(self, job_id: str) -> bool:
        task = self.active_jobs.pop(job_id, None)
        if task is None:
            return False
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        self.logger.info("Simulated print cancelled", extra={"job_id": job_id})
        return True

    async def _print(self, job_id: str, printer_id: str, duration: float) -> None:
        started = datetime.utcnow()
        await asyncio.sleep(duration)
        self.active_jobs.pop(job_id, None)

        reason = self._job_failures.pop(job_id, None) or self._printer_failures.pop(printer_id, None)
        if reason:
            self.logger.info("Simulated print failed", extra={"job_id": job_id, "reason": reason})
            self.report_failed(job_id, reason)
            return

        self.logger.info("Simulated print finished", extra={
            "job_id": job_id,
            "elapsed_seconds": (datetime.utcnow() - started).total_seconds()
        })
        self.report_completed(job_id)
