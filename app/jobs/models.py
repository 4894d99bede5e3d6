"""Domain models for relay upload jobs."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

from app.jobs.errors import SessionNegotiationError, TransferError, UploadPipelineError

JobStatus = Literal["pending", "downloading", "uploading", "completed", "failed"]

TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "failed"})

# Forward edges of the job lifecycle; "failed" is reachable from every non-terminal state.
ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
  "pending": frozenset({"downloading", "failed"}),
  "downloading": frozenset({"uploading", "failed"}),
  "uploading": frozenset({"completed", "failed"}),
  "completed": frozenset(),
  "failed": frozenset(),
}


@dataclass(frozen=True)
class TransferResult:
  """Outcome of a successful relay attempt."""

  status_code: int
  video_id: str | None
  raw_response: str | None = None


@dataclass(frozen=True)
class JobError:
  """Failure details recorded on a job."""

  kind: str
  message: str
  status_code: int | None = None
  code: str | None = None

  @classmethod
  def from_exception(cls, exc: BaseException) -> JobError:
    if isinstance(exc, TransferError):
      return cls(kind=exc.kind, message=exc.message, status_code=exc.status_code, code=exc.code)
    if isinstance(exc, SessionNegotiationError):
      return cls(kind=exc.kind, message=exc.message, status_code=exc.status_code)
    if isinstance(exc, UploadPipelineError):
      return cls(kind=exc.kind, message=exc.message)
    return cls(kind=type(exc).__name__, message=str(exc) or type(exc).__name__)


@dataclass(frozen=True)
class UploadJob:
  """Represents one source-to-destination relay tracked by the registry."""

  id: str
  status: JobStatus
  created_at: datetime
  video_url: str
  video_metadata: dict[str, Any] | None = None
  attempts: int = 0
  completed_at: datetime | None = None
  result: TransferResult | None = None
  error: JobError | None = None

  @property
  def is_terminal(self) -> bool:
    return self.status in TERMINAL_STATUSES


def can_transition(current: str, target: str) -> bool:
  """Return True when ``current -> target`` is a legal lifecycle edge."""
  return target in ALLOWED_TRANSITIONS.get(current, frozenset())
