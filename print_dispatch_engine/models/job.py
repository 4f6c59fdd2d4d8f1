"""
Print job data models for the Print Dispatch Engine

Defines print jobs, their attached files, the job status enumeration and the
status transition rules the Job Store enforces.
"""

from enum import Enum
from datetime import datetime
from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field, replace


class JobStatus(Enum):
    """Print job status enumeration."""
    WAITING = "waiting"
    PRINTING = "printing"
    COMPLETED = "completed"


@dataclass(frozen=True)
class PrintFile:
    """A file attached to a print job. Opaque to the dispatcher."""

    name: str
    size: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "size": self.size}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PrintFile":
        return cls(name=data["name"], size=str(data.get("size", "")))


@dataclass
class PrintJob:
    """Core print job data model."""

    # Primary identification
    job_id: str
    owner_name: str

    # Payload, never interpreted by the dispatcher
    files: List[PrintFile] = field(default_factory=list)
    notes: Optional[str] = None

    # Submission time, used for FIFO ordering
    timestamp: datetime = field(default_factory=datetime.utcnow)

    # Status tracking
    status: JobStatus = JobStatus.WAITING

    # Dispatch bookkeeping (informational)
    printer_id: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    failure_reason: Optional[str] = None
    attempts: int = 0

    def copy(self) -> "PrintJob":
        """Return a detached snapshot of this job."""
        return replace(self, files=list(self.files))

    @property
    def is_waiting(self) -> bool:
        return self.status == JobStatus.WAITING

    @property
    def is_printing(self) -> bool:
        return self.status == JobStatus.PRINTING

    @property
    def is_completed(self) -> bool:
        return self.status == JobStatus.COMPLETED

    def get_duration(self) -> Optional[float]:
        """Get print duration in seconds if completed."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert job to dictionary for serialization."""
        return {
            "job_id": self.job_id,
            "owner_name": self.owner_name,
            "files": [f.to_dict() for f in self.files],
            "notes": self.notes,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "status": self.status.value,
            "printer_id": self.printer_id,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "failure_reason": self.failure_reason,
            "attempts": self.attempts
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PrintJob":
        """Create job from dictionary."""
        data = dict(data)

        for field_name in ["timestamp", "started_at", "completed_at"]:
            value = data.get(field_name)
            if isinstance(value, str):
                data[field_name] = datetime.fromisoformat(value)

        data["files"] = [
            f if isinstance(f, PrintFile) else PrintFile.from_dict(f)
            for f in data.get("files", [])
        ]
        if "status" in data and not isinstance(data["status"], JobStatus):
            data["status"] = JobStatus(data["status"])
        if data.get("timestamp") is None:
            data.pop("timestamp", None)

        return cls(**data)


# Job status transition rules
JOB_STATUS_TRANSITIONS = {
    JobStatus.WAITING: [JobStatus.PRINTING],
    JobStatus.PRINTING: [JobStatus.COMPLETED, JobStatus.WAITING],
    JobStatus.COMPLETED: [],  # Terminal state
}


def can_transition_to(current_status: JobStatus, target_status: JobStatus) -> bool:
    """Check if a job can transition from current status to target status."""
    return target_status in JOB_STATUS_TRANSITIONS.get(current_status, [])


def get_valid_transitions(current_status: JobStatus) -> List[JobStatus]:
    """Get list of valid status transitions from current status."""
    return list(JOB_STATUS_TRANSITIONS.get(current_status, []))
