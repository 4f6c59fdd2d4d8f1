"""
Data models for the Print Dispatch Engine

Jobs, printers and the dispatch bookkeeping structures shared by services.
"""

# Job models
from .job import (
    PrintJob,
    PrintFile,
    JobStatus,
    JOB_STATUS_TRANSITIONS,
    can_transition_to,
    get_valid_transitions
)

# Printer models
from .printer import (
    PrinterDevice,
    PrinterHealth,
    ConnectionType,
    Consumables,
    DEFAULT_CONSUMABLE_THRESHOLD
)

# Dispatch models
from .dispatch import (
    Assignment,
    DispatchMode,
    DispatchState,
    DispatchResult,
    SweepResult,
    InFlightPrint,
    LoopState,
    NoDispatchReason,
    Notice,
    NoticeLevel
)

__all__ = [
    # Job models
    "PrintJob",
    "PrintFile",
    "JobStatus",
    "JOB_STATUS_TRANSITIONS",
    "can_transition_to",
    "get_valid_transitions",

    # Printer models
    "PrinterDevice",
    "PrinterHealth",
    "ConnectionType",
    "Consumables",
    "DEFAULT_CONSUMABLE_THRESHOLD",

    # Dispatch models
    "Assignment",
    "DispatchMode",
    "DispatchState",
    "DispatchResult",
    "SweepResult",
    "InFlightPrint",
    "LoopState",
    "NoDispatchReason",
    "Notice",
    "NoticeLevel"
]
