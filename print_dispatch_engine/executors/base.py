"""
Base print executor interface.

A print executor performs the actual printing for an assignment and later
reports back through the completion and failure callbacks it was bound to.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

from ..models.job import PrintJob
from ..models.printer import PrinterDevice
from ..utils.logger import get_logger

CompletedCallback = Callable[[str], Any]
FailedCallback = Callable[[str, str], Any]


class BasePrintExecutor(ABC):
    """
    Abstract base class for all print executors.

    Executors never change job or printer state themselves; they call
    ``report_completed`` / ``report_failed``, which forward to the engine's
    completion monitor. Callbacks must be invoked on the engine's event loop.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize the executor.

        Args:
            config: Executor-specific configuration
        """
        self.config = config or {}
        self._on_completed: Optional[CompletedCallback] = None
        self._on_failed: Optional[FailedCallback] = None
        self.logger = get_logger(__name__)

    def bind(self, on_completed: CompletedCallback, on_failed: FailedCallback) -> None:
        """Attach the engine callbacks."""
        self._on_completed = on_completed
        self._on_failed = on_failed

    @property
    def is_bound(self) -> bool:
        return self._on_completed is not None and self._on_failed is not None

    async def start(self) -> None:
        """Prepare the executor. Default is a no-op."""

    async def shutdown(self) -> None:
        """Release executor resources. Default is a no-op."""

    @abstractmethod
    async def submit_for_printing(self, job: PrintJob, printer: PrinterDevice) -> None:
        """
        Start printing a job on a printer.

        Must return promptly; completion is reported later through the
        callbacks. Raising ExecutorError means the job never started.

        Args:
            job: Snapshot of the assigned job
            printer: Snapshot of the assigned printer
        """

    @abstractmethod
    async def cancel(self, job_id: str) -> bool:
        """
        Stop a job that was submitted earlier, without reporting back.

        Returns:
            True if the job was known and cancelled
        """

    def report_completed(self, job_id: str) -> Any:
        """Forward a completion signal to the engine."""
        if self._on_completed is None:
            self.logger.warning("Completion reported on an unbound executor", extra={"job_id": job_id})
            return None
        return self._on_completed(job_id)

    def report_failed(self, job_id: str, reason: str) -> Any:
        """Forward a failure signal to the engine."""
        if self._on_failed is None:
            self.logger.warning("Failure reported on an unbound executor", extra={
                "job_id": job_id,
                "reason": reason
            })
            return None
        return self._on_failed(job_id, reason)

    @property
    def executor_name(self) -> str:
        return self.__class__.__name__.replace("PrintExecutor", "").lower() or "base"
