"""
Services package for the Print Dispatch Engine

Contains the stores, the dispatcher and the loops that drive it.
"""

from .job_store import JobStore
from .printer_registry import PrinterRegistry
from .eligibility import select_eligible, is_low_on_consumables
from .dispatcher import Dispatcher, dispatch_once
from .completion_monitor import CompletionMonitor
from .scheduler import SchedulingLoop
from .reporting import DispatchMetrics, DispatchReport, ReportingService

__all__ = [
    "JobStore",
    "PrinterRegistry",
    "select_eligible",
    "is_low_on_consumables",
    "Dispatcher",
    "dispatch_once",
    "CompletionMonitor",
    "SchedulingLoop",
    "DispatchMetrics",
    "DispatchReport",
    "ReportingService"
]
