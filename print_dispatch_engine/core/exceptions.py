"""
Exception classes for the Print Dispatch Engine

Backpressure (no eligible printer, concurrency ceiling reached) is never an
exception. These cover configuration mistakes, unknown identifiers and
illegal state changes requested by collaborators.
"""

from typing import Optional, Dict, Any


class PrintDispatchError(Exception):
    """Base exception for all dispatch engine errors."""

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON serialization."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details
        }


class JobNotFoundError(PrintDispatchError):
    """Raised when a requested job cannot be found."""

    def __init__(self, job_id: str):
        super().__init__(
            f"Job {job_id} not found",
            error_code="JOB_NOT_FOUND",
            details={"job_id": job_id}
        )


class PrinterNotFoundError(PrintDispatchError):
    """Raised when a requested printer cannot be found."""

    def __init__(self, printer_id: str):
        super().__init__(
            f"Printer {printer_id} not found",
            error_code="PRINTER_NOT_FOUND",
            details={"printer_id": printer_id}
        )


class JobSubmissionError(PrintDispatchError):
    """Raised when a job cannot be added to the store."""

    def __init__(self, message: str, job_id: Optional[str] = None):
        super().__init__(
            f"Job submission failed: {message}",
            error_code="JOB_SUBMISSION_ERROR",
            details={"job_id": job_id}
        )


class InvalidTransitionError(PrintDispatchError):
    """Raised when a job status change violates the transition table."""

    def __init__(self, job_id: str, current_status: str, target_status: str):
        super().__init__(
            f"Job {job_id} cannot move from {current_status} to {target_status}",
            error_code="INVALID_TRANSITION",
            details={"job_id": job_id, "current_status": current_status, "target_status": target_status}
        )


class PrinterOccupiedError(PrintDispatchError):
    """Raised when occupying a printer that already holds another job."""

    def __init__(self, printer_id: str, current_job_id: str, requested_job_id: Optional[str] = None):
        super().__init__(
            f"Printer {printer_id} is occupied by job {current_job_id}",
            error_code="PRINTER_OCCUPIED",
            details={
                "printer_id": printer_id,
                "current_job_id": current_job_id,
                "requested_job_id": requested_job_id
            }
        )


class ConfigurationError(PrintDispatchError):
    """Raised when there's an error in configuration."""

    def __init__(self, config_key: str, message: str):
        super().__init__(
            f"Configuration error for {config_key}: {message}",
            error_code="CONFIGURATION_ERROR",
            details={"config_key": config_key}
        )


class ValidationError(PrintDispatchError):
    """Raised when input validation fails."""

    def __init__(self, field: str, message: str, value: Any = None):
        super().__init__(
            f"Validation error for {field}: {message}",
            error_code="VALIDATION_ERROR",
            details={"field": field, "value": str(value) if value is not None else None}
        )


class ExecutorError(PrintDispatchError):
    """Raised by a print executor that cannot accept or run a job."""

    def __init__(self, job_id: str, message: str, printer_id: Optional[str] = None):
        super().__init__(
            f"Print executor failed for job {job_id}: {message}",
            error_code="EXECUTOR_ERROR",
            details={"job_id": job_id, "printer_id": printer_id}
        )


class DispatchError(PrintDispatchError):
    """Raised when engine-level operations fail (e.g. engine not running)."""

    def __init__(self, message: str):
        super().__init__(
            f"Dispatch error: {message}",
            error_code="DISPATCH_ERROR"
        )


class ErrorRegistry:
    """Counts recorded errors by type for reporting."""

    def __init__(self):
        self.error_counts: Dict[str, int] = {}

    def record_error(self, error: PrintDispatchError):
        """Record an error for analysis."""
        error_type = error.__class__.__name__
        self.error_counts[error_type] = self.error_counts.get(error_type, 0) + 1

    def reset(self):
        self.error_counts.clear()

    def get_error_statistics(self) -> Dict[str, Any]:
        """Get error statistics for monitoring."""
        return {
            "total_errors": sum(self.error_counts.values()),
            "error_counts": dict(self.error_counts),
            "most_common_error": max(self.error_counts.items(), key=lambda x: x[1])[0] if self.error_counts else None
        }


# Global error registry instance
error_registry = ErrorRegistry()
