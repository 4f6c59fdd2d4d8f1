"""
Print Dispatch Engine

Automatic print job dispatch for a small printer fleet: waiting jobs are
matched to online printers with enough paper and ink, in priority order,
under a system-wide ceiling on concurrent prints.

Key Features:
- Deterministic FIFO job to priority-ordered printer matching
- Auto mode timer and manual dispatch-all sweep
- Completion and failure handling with printer error tracking
- Operator controls (pause, mark done, counters, concurrency limit)
- Structured logging and Prometheus metrics

Usage:
    from print_dispatch_engine import DispatchEngine, PrinterDevice, Consumables, PrintFile

    engine = DispatchEngine()
    engine.register_printer(PrinterDevice(
        printer_id="front-desk",
        name="Front Desk Laser",
        consumables=Consumables(paper_level=80, ink_level=65),
        priority=1
    ))
    await engine.start()

    job = engine.submit_job("Budi", files=[PrintFile("thesis.pdf", "2.3 MB")])
    result = await engine.dispatch_once()
    print(result.assignments)

    # The print executor reports back
    engine.on_job_completed(job.job_id)
"""

__version__ = "1.0.0"
__author__ = "Print Dispatch Engine Team"
__license__ = "MIT"

# Core engine
from .core.exceptions import (
    PrintDispatchError,
    JobNotFoundError,
    PrinterNotFoundError,
    JobSubmissionError,
    InvalidTransitionError,
    PrinterOccupiedError,
    ConfigurationError,
    ValidationError,
    ExecutorError,
    DispatchError
)
from .core.config import DispatchConfig, FleetConfig, load_config
from .core.engine import DispatchEngine

# Data models
from .models.job import PrintJob, PrintFile, JobStatus
from .models.printer import PrinterDevice, PrinterHealth, ConnectionType, Consumables
from .models.dispatch import Assignment, DispatchMode, DispatchResult, SweepResult, LoopState, Notice

# Services (for advanced usage)
from .services.dispatcher import dispatch_once
from .services.eligibility import select_eligible

# Executors and discovery
from .executors import BasePrintExecutor, ManualPrintExecutor, SimulatedPrintExecutor
from .discovery import PrinterDiscovery, StaticPrinterDiscovery

# Utilities
from .utils.logger import setup_logger, get_logger

__all__ = [
    # Core
    "DispatchEngine",
    "DispatchConfig",
    "FleetConfig",
    "load_config",

    # Models
    "PrintJob",
    "PrintFile",
    "JobStatus",
    "PrinterDevice",
    "PrinterHealth",
    "ConnectionType",
    "Consumables",
    "Assignment",
    "DispatchMode",
    "DispatchResult",
    "SweepResult",
    "LoopState",
    "Notice",

    # Services (for advanced usage)
    "dispatch_once",
    "select_eligible",

    # Executors and discovery
    "BasePrintExecutor",
    "ManualPrintExecutor",
    "SimulatedPrintExecutor",
    "PrinterDiscovery",
    "StaticPrinterDiscovery",

    # Utilities
    "setup_logger",
    "get_logger",

    # Exceptions
    "PrintDispatchError",
    "JobNotFoundError",
    "PrinterNotFoundError",
    "JobSubmissionError",
    "InvalidTransitionError",
    "PrinterOccupiedError",
    "ConfigurationError",
    "ValidationError",
    "ExecutorError",
    "DispatchError",

    # Package metadata
    "__version__",
    "__author__",
    "__license__"
]

# Package-level configuration
import logging
logging.getLogger(__name__).addHandler(logging.NullHandler())


# Quick start helper
def quick_start(config_path=None, executor=None) -> DispatchEngine:
    """
    Quick start helper for simple use cases.

    Args:
        config_path: Optional YAML fleet configuration
        executor: Optional print executor; simulated printing by default

    Returns:
        Configured DispatchEngine with the configured printers and seed jobs

    Example:
        engine = quick_start("fleet.yaml")
        async with engine:
            result = await engine.dispatch_now_all()
    """
    return DispatchEngine.from_config(load_config(config_path), executor=executor)
