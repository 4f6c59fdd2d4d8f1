"""
JobStore service for the Print Dispatch Engine

Holds the authoritative ordered list of print jobs. Readers get copies; all
status writes go through set_job_status, which enforces the transition table.
"""

import threading
from datetime import datetime
from typing import Dict, List, Optional, Iterable
from uuid import uuid4

from ..models.job import PrintJob, PrintFile, JobStatus, can_transition_to
from ..utils.logger import get_logger, set_log_context
from ..core.exceptions import JobNotFoundError, JobSubmissionError, InvalidTransitionError


class JobStore:
    """
    In-process job store.

    Jobs are kept in submission order (timestamp, then insertion sequence),
    which is the FIFO order the dispatcher walks.
    """

    def __init__(self):
        self._jobs: Dict[str, PrintJob] = {}
        self._sequence: Dict[str, int] = {}
        self._next_sequence = 0
        self._lock = threading.RLock()

        self.logger = get_logger(__name__)
        set_log_context(self.logger, component="job_store")

    def submit_job(
        self,
        owner_name: str,
        files: Optional[Iterable[PrintFile]] = None,
        notes: Optional[str] = None,
        job_id: Optional[str] = None,
        timestamp: Optional[datetime] = None
    ) -> PrintJob:
        """
        Add a new waiting job at the tail of the queue.

        Args:
            owner_name: Customer the job belongs to
            files: Attached files
            notes: Free-form instructions
            job_id: Explicit id; generated when omitted
            timestamp: Submission time; defaults to now

        Returns:
            Snapshot of the stored job

        Raises:
            JobSubmissionError: If the id is already taken or the owner is blank
        """
        if not owner_name or not owner_name.strip():
            raise JobSubmissionError("owner_name is required", job_id)

        job = PrintJob(
            job_id=job_id or uuid4().hex[:12],
            owner_name=owner_name,
            files=list(files or []),
            notes=notes,
            timestamp=timestamp or datetime.utcnow(),
            status=JobStatus.WAITING
        )

        with self._lock:
            if job.job_id in self._jobs:
                raise JobSubmissionError("duplicate job id", job.job_id)
            self._jobs[job.job_id] = job
            self._sequence[job.job_id] = self._next_sequence
            self._next_sequence += 1
            queue_size = self._count(JobStatus.WAITING)

        self.logger.info("Job submitted", extra={
            "job_id": job.job_id,
            "file_count": len(job.files),
            "queue_size": queue_size
        })
        return job.copy()

    def get_job(self, job_id: str) -> PrintJob:
        """Get a snapshot of one job."""
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            return job.copy()

    def has_job(self, job_id: str) -> bool:
        with self._lock:
            return job_id in self._jobs

    def list_jobs(self, status: Optional[JobStatus] = None) -> List[PrintJob]:
        """
        Ordered snapshot of jobs.

        Args:
            status: Optional status filter

        Returns:
            Job copies, earliest submission first
        """
        with self._lock:
            ordered = sorted(
                self._jobs.values(),
                key=lambda j: (j.timestamp, self._sequence[j.job_id])
            )
            return [j.copy() for j in ordered if status is None or j.status == status]

    def set_job_status(self, job_id: str, status: JobStatus, printer_id: Optional[str] = None,
                       reason: Optional[str] = None) -> PrintJob:
        """
        Transition a job to a new status.

        Args:
            job_id: Job to update
            status: Target status
            printer_id: Printer running the job (for the printing transition)
            reason: Failure reason recorded on requeue

        Returns:
            Snapshot after the update

        Raises:
            JobNotFoundError: Unknown job
            InvalidTransitionError: Transition not permitted
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(job_id)

            previous = job.status
            if not can_transition_to(previous, status):
                raise InvalidTransitionError(job_id, previous.value, status.value)

            now = datetime.utcnow()
            job.status = status
            if status == JobStatus.PRINTING:
                job.printer_id = printer_id
                job.started_at = now
                job.completed_at = None
                job.attempts += 1
            elif status == JobStatus.COMPLETED:
                job.completed_at = now
                job.failure_reason = None
            elif status == JobStatus.WAITING:
                job.printer_id = None
                job.started_at = None
                job.failure_reason = reason

            snapshot = job.copy()

        self.logger.info("Job status changed", extra={
            "job_id": job_id,
            "from_status": previous.value,
            "to_status": status.value,
            "printer_id": printer_id
        })
        return snapshot

    def remove_job(self, job_id: str) -> PrintJob:
        """
        Administrative deletion. Printing jobs cannot be removed.

        Raises:
            JobNotFoundError: Unknown job
            InvalidTransitionError: Job is printing
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            if job.status == JobStatus.PRINTING:
                raise InvalidTransitionError(job_id, job.status.value, "removed")
            del self._jobs[job_id]
            del self._sequence[job_id]

        self.logger.info("Job removed", extra={"job_id": job_id, "status": job.status.value})
        return job

    def count_by_status(self) -> Dict[JobStatus, int]:
        """Number of jobs in each status."""
        with self._lock:
            return {status: self._count(status) for status in JobStatus}

    def _count(self, status: JobStatus) -> int:
        return sum(1 for j in self._jobs.values() if j.status == status)

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)
