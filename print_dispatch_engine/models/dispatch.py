"""
Dispatch models for the Print Dispatch Engine

Assignments, engine state, per-round and per-sweep results, in-flight
tracking records and operator notices.
"""

from enum import Enum
from datetime import datetime
from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field


class DispatchMode(Enum):
    """Whether the scheduling loop ticks continuously or only on demand."""
    AUTO = "auto"
    MANUAL = "manual"


class LoopState(Enum):
    """Scheduling loop state machine."""
    IDLE = "idle"
    DISPATCHING = "dispatching"
    STOPPED = "stopped"


class NoDispatchReason(Enum):
    """Why a dispatch round assigned nothing. None of these is a fault."""
    NO_WAITING_JOBS = "no_waiting_jobs"
    NO_ELIGIBLE_PRINTERS = "no_eligible_printers"
    CONCURRENCY_LIMIT = "concurrency_limit"


@dataclass(frozen=True)
class Assignment:
    """A job paired with the printer that will run it."""

    job_id: str
    printer_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {"job_id": self.job_id, "printer_id": self.printer_id}


@dataclass
class DispatchState:
    """Engine-wide dispatch counters and settings."""

    max_concurrent_jobs: int = 3
    processed_count: int = 0
    mode: DispatchMode = DispatchMode.AUTO

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_concurrent_jobs": self.max_concurrent_jobs,
            "processed_count": self.processed_count,
            "mode": self.mode.value
        }


@dataclass
class DispatchResult:
    """Outcome of one dispatch round."""

    assignments: List[Assignment] = field(default_factory=list)
    waiting_count: int = 0
    printing_count: int = 0
    reason: Optional[NoDispatchReason] = None
    dispatched_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def is_noop(self) -> bool:
        return not self.assignments

    def to_dict(self) -> Dict[str, Any]:
        return {
            "assignments": [a.to_dict() for a in self.assignments],
            "waiting_count": self.waiting_count,
            "printing_count": self.printing_count,
            "reason": self.reason.value if self.reason else None,
            "dispatched_at": self.dispatched_at.isoformat()
        }


@dataclass
class SweepResult:
    """Outcome of a manual dispatch-all sweep."""

    assignments: List[Assignment] = field(default_factory=list)
    rounds: int = 0
    still_waiting: List[str] = field(default_factory=list)
    exhausted: bool = False
    timed_out: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "assignments": [a.to_dict() for a in self.assignments],
            "rounds": self.rounds,
            "still_waiting": list(self.still_waiting),
            "exhausted": self.exhausted,
            "timed_out": self.timed_out
        }


@dataclass
class InFlightPrint:
    """A job currently printing, as tracked by the completion monitor."""

    job_id: str
    printer_id: str
    started_at: datetime = field(default_factory=datetime.utcnow)

    def get_elapsed_seconds(self) -> float:
        return (datetime.utcnow() - self.started_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "job_id": self.job_id,
            "printer_id": self.printer_id,
            "started_at": self.started_at.isoformat(),
            "elapsed_seconds": self.get_elapsed_seconds()
        }


class NoticeLevel(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class Notice:
    """Operator-facing notice (failed print, printer in error, low consumables)."""

    level: NoticeLevel
    kind: str
    message: str
    job_id: Optional[str] = None
    printer_id: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level.value,
            "kind": self.kind,
            "message": self.message,
            "job_id": self.job_id,
            "printer_id": self.printer_id,
            "created_at": self.created_at.isoformat()
        }
