"""Registry of relay upload jobs with bounded retention."""

from __future__ import annotations

import itertools
import logging
import threading
from collections.abc import Callable
from dataclasses import replace
from datetime import UTC, datetime
from typing import Protocol

from app.jobs.errors import JobTransitionError
from app.jobs.models import JobError, JobStatus, TransferResult, UploadJob, can_transition

logger = logging.getLogger(__name__)

DEFAULT_RETENTION = 100


def utc_now() -> datetime:
  return datetime.now(UTC)


class JobRegistry(Protocol):
  """Registry contract used by the upload orchestrator."""

  def create_job(self, record: UploadJob) -> None:
    """Insert a freshly created job."""

  def get_job(self, job_id: str) -> UploadJob | None:
    """Fetch a job snapshot by identifier."""

  def update_job(
    self,
    job_id: str,
    *,
    status: JobStatus | None = None,
    attempts: int | None = None,
    completed_at: datetime | None = None,
    result: TransferResult | None = None,
    error: JobError | None = None,
  ) -> UploadJob:
    """Apply a partial update and return the new snapshot."""

  def sweep(self) -> list[str]:
    """Evict jobs beyond the retention cap and return the evicted ids."""


class InMemoryJobRegistry:
  """Thread-safe in-process registry keeping the K most recently created jobs.

  Records are immutable snapshots; every update swaps in a new record so
  readers never observe a half-applied change. Status changes are checked
  against the lifecycle graph and terminal jobs reject further updates.
  """

  def __init__(self, *, retention: int = DEFAULT_RETENTION, clock: Callable[[], datetime] = utc_now) -> None:
    if retention <= 0:
      raise ValueError("retention must be a positive integer.")
    self.retention = retention
    self.clock = clock
    self._jobs: dict[str, UploadJob] = {}
    self._order: dict[str, int] = {}
    self._sequence = itertools.count()
    self._lock = threading.Lock()

  def __len__(self) -> int:
    with self._lock:
      return len(self._jobs)

  def __contains__(self, job_id: object) -> bool:
    with self._lock:
      return job_id in self._jobs

  def job_ids(self) -> list[str]:
    """Return retained job ids, oldest first."""
    with self._lock:
      return [job.id for job in self._ordered()]

  def create_job(self, record: UploadJob) -> None:
    with self._lock:
      if record.id in self._jobs:
        raise ValueError(f"Duplicate job id: {record.id}")
      self._jobs[record.id] = record
      self._order[record.id] = next(self._sequence)

  def get_job(self, job_id: str) -> UploadJob | None:
    with self._lock:
      return self._jobs.get(job_id)

  def update_job(
    self,
    job_id: str,
    *,
    status: JobStatus | None = None,
    attempts: int | None = None,
    completed_at: datetime | None = None,
    result: TransferResult | None = None,
    error: JobError | None = None,
  ) -> UploadJob:
    with self._lock:
      current = self._jobs.get(job_id)
      if current is None:
        raise JobTransitionError(f"Cannot update unknown job {job_id}")

      if current.is_terminal:
        raise JobTransitionError(f"Job {job_id} is already {current.status}")

      if status is not None and status != current.status and not can_transition(current.status, status):
        raise JobTransitionError(f"Illegal transition {current.status} -> {status} for job {job_id}")

      # Result and error belong to terminal snapshots only.
      target_status = status or current.status
      if result is not None and target_status != "completed":
        raise JobTransitionError(f"Result can only be recorded on completion for job {job_id}")
      if error is not None and target_status != "failed":
        raise JobTransitionError(f"Error can only be recorded on failure for job {job_id}")

      changes = {key: value for key, value in {"status": status, "attempts": attempts, "completed_at": completed_at, "result": result, "error": error}.items() if value is not None}
      updated = replace(current, **changes)
      self._jobs[job_id] = updated
      return updated

  def sweep(self) -> list[str]:
    with self._lock:
      excess = len(self._jobs) - self.retention
      if excess <= 0:
        return []

      evicted = [job.id for job in self._ordered()[:excess]]
      for job_id in evicted:
        del self._jobs[job_id]
        del self._order[job_id]

    logger.info("Evicted %d job(s) beyond retention=%d", len(evicted), self.retention)
    return evicted

  def _ordered(self) -> list[UploadJob]:
    # Creation time first; insertion order settles jobs created in the same tick.
    return sorted(self._jobs.values(), key=lambda job: (job.created_at, self._order[job.id]))
