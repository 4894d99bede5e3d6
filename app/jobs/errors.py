"""Error taxonomy for the upload job pipeline."""

from __future__ import annotations

from typing import Any

# Transport failure codes attached to TransferError.
CODE_TIMEOUT = "ETIMEDOUT"
CODE_CONNECTION_RESET = "ECONNRESET"
CODE_CONNECTION_REFUSED = "ECONNREFUSED"
CODE_TRANSPORT = "ETRANSPORT"

RETRYABLE_TRANSPORT_CODES = frozenset({CODE_TIMEOUT, CODE_CONNECTION_RESET})


class UploadPipelineError(Exception):
  """Base class for failures raised by the upload pipeline."""

  kind = "UploadPipelineError"
  http_status = 500

  def __init__(self, message: str, *, hint: str | None = None) -> None:
    super().__init__(message)
    self.message = message
    self.hint = hint

  def to_payload(self) -> dict[str, Any]:
    """Render the error for callers that never received a job id."""
    payload: dict[str, Any] = {"error": self.kind, "message": self.message}
    if self.hint:
      payload["hint"] = self.hint
    return payload


class UploadValidationError(UploadPipelineError):
  """Creation request is missing required fields."""

  kind = "ValidationError"
  http_status = 400


class AuthResolutionError(UploadPipelineError):
  """No usable access credential could be resolved."""

  http_status = 400

  def __init__(self, message: str, *, kind: str = "MissingAuth", http_status: int = 400, hint: str | None = None) -> None:
    super().__init__(message, hint=hint)
    self.kind = kind
    self.http_status = http_status


class SizeUnavailableError(UploadPipelineError):
  """Total payload length could not be determined."""

  kind = "SizeUnavailable"
  http_status = 400


class SessionNegotiationError(UploadPipelineError):
  """Destination did not hand out a resumable session handle."""

  kind = "SessionNegotiationError"
  http_status = 400

  def __init__(self, message: str, *, status_code: int | None = None, body: str | None = None) -> None:
    super().__init__(message)
    self.status_code = status_code
    self.body = body

  def to_payload(self) -> dict[str, Any]:
    payload = super().to_payload()
    if self.status_code is not None:
      payload["statusCode"] = self.status_code
    return payload


class TransferError(UploadPipelineError):
  """One relay attempt failed.

  ``status_code`` is the destination's HTTP status when it answered,
  ``code`` a transport failure code when it did not. ``retryable`` follows
  from the two: destination 5xx and 308, connection resets and timeouts.
  """

  kind = "TransferError"

  def __init__(self, message: str, *, status_code: int | None = None, body: str | None = None, code: str | None = None, kind: str | None = None) -> None:
    super().__init__(message)
    self.status_code = status_code
    self.body = body
    self.code = code
    if kind:
      self.kind = kind

  @property
  def retryable(self) -> bool:
    if self.status_code is not None and (self.status_code >= 500 or self.status_code == 308):
      return True
    return self.code in RETRYABLE_TRANSPORT_CODES


class JobNotFoundError(UploadPipelineError):
  """Job id is unknown to the registry (never created or evicted)."""

  kind = "JobNotFound"
  http_status = 404

  def __init__(self, job_id: str) -> None:
    super().__init__("Job not found")
    self.job_id = job_id

  def to_payload(self) -> dict[str, Any]:
    return {"error": "Job not found", "jobId": self.job_id}


class JobTransitionError(UploadPipelineError):
  """Illegal status transition or mutation of a terminal job."""

  kind = "JobTransitionError"
