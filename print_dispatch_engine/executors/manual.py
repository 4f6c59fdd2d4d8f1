"""
Manual print executor.

Records submissions and leaves completion to an operator (or a test): call
``complete`` or ``fail`` when the physical print is done.
"""

from typing import Any, Dict, List, Optional, Set

from .base import BasePrintExecutor
from ..models.job import PrintJob
from ..models.printer import PrinterDevice
from ..core.exceptions import ExecutorError


class ManualPrintExecutor(BasePrintExecutor):
    """Executor driven by explicit operator signals."""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        self.submitted: Dict[str, str] = {}
        self.history: List[Dict[str, str]] = []
        self.cancelled: List[str] = []
        self._rejected_printers: Set[str] = set()

    def reject_printer(self, printer_id: str) -> None:
        """Refuse future submissions to ``printer_id`` (e.g. spooler offline)."""
        self._rejected_printers.add(printer_id)

    async def submit_for_printing(self, job: PrintJob, printer: PrinterDevice) -> None:
        if printer.printer_id in self._rejected_printers:
            raise ExecutorError(job.job_id, "printer rejected the job", printer.printer_id)
        self.submitted[job.job_id] = printer.printer_id
        self.history.append({"job_id": job.job_id, "printer_id": printer.printer_id})

    async def cancel(self, job_id: str) -> bool:
        if self.submitted.pop(job_id, None) is None:
            return False
        self.cancelled.append(job_id)
        return True

    def complete(self, job_id: str) -> Any:
        """Signal that ``job_id`` finished printing."""
        self.submitted.pop(job_id, None)
        return self.report_completed(job_id)

    def fail(self, job_id: str, reason: str) -> Any:
        """Signal that ``job_id`` failed on its printer."""
        self.submitted.pop(job_id, None)
        return self.report_failed(job_id, reason)

    def printer_for(self, job_id: str) -> Optional[str]:
        return self.submitted.get(job_id)
