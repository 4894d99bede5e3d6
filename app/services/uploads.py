import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

import httpx

from app.api.models import UploadRequest
from app.config import Settings
from app.jobs.backoff import RetryPolicy, Sleep, retry_with_backoff
from app.jobs.errors import JobNotFoundError, JobTransitionError, UploadValidationError
from app.jobs.models import JobError, TransferResult, UploadJob
from app.jobs.registry import JobRegistry, utc_now
from app.jobs.runner import UploadJobRunner
from app.services.credentials import CredentialRequest, CredentialStore, resolve_access_token
from app.services.youtube.session import create_resumable_session
from app.services.youtube.source import resolve_content_length
from app.services.youtube.transfer import TransferPlan, TransferTimeouts, stream_upload
from app.utils.ids import generate_job_id

logger = logging.getLogger(__name__)

_MISSING_VIDEO_URL_HINT = "If using stored OAuth (visit /auth/youtube first), also send videoMetadata. Otherwise provide uploadUrl."
_MISSING_DESTINATION_HINT = "Either provide uploadUrl from your setup node, OR use stored OAuth (/auth/youtube) and provide videoMetadata with snippet (title, description, etc.)"


@dataclass(frozen=True)
class _Destination:
  video_url: str
  upload_url: str
  access_token: str
  content_type: str


def _require_http_url(value: str, field: str) -> None:
  try:
    url = httpx.URL(value)
  except httpx.InvalidURL as exc:
    raise UploadValidationError(f"Invalid {field}: {exc}") from exc
  if url.scheme not in ("http", "https") or not url.host:
    raise UploadValidationError(f"Invalid {field}: expected an absolute http(s) URL")


def retry_policy_from_settings(settings: Settings) -> RetryPolicy:
  return RetryPolicy(max_attempts=settings.max_upload_attempts, base_delay_seconds=settings.retry_base_delay_seconds, max_delay_seconds=settings.retry_max_delay_seconds)


def transfer_timeouts_from_settings(settings: Settings) -> TransferTimeouts:
  return TransferTimeouts(download_idle=settings.download_idle_timeout_seconds, upload_connect=settings.upload_connect_timeout_seconds, upload_response=settings.upload_response_timeout_seconds)


class UploadService:
  """Creates relay jobs and drives them from ``pending`` to a terminal status."""

  def __init__(
    self,
    *,
    settings: Settings,
    client: httpx.AsyncClient,
    registry: JobRegistry,
    runner: UploadJobRunner,
    credentials: CredentialStore,
    sleep: Sleep = asyncio.sleep,
    clock: Callable[[], datetime] = utc_now,
  ) -> None:
    self.settings = settings
    self.client = client
    self.registry = registry
    self.runner = runner
    self.credentials = credentials
    self.retry_policy = retry_policy_from_settings(settings)
    self.transfer_timeouts = transfer_timeouts_from_settings(settings)
    self._sleep = sleep
    self._clock = clock

  async def create_job(self, request: UploadRequest, *, authorization: str | None = None) -> UploadJob:
    """
    Validate the request, resolve credential and destination, then start the job.

    Everything that can fail before the job exists (validation, credential,
    size probe and session negotiation when no uploadUrl was given) raises
    to the caller and leaves the registry untouched. The returned record is
    the ``pending`` snapshot; the relay runs as a detached task.
    """
    if not request.video_url:
      raise UploadValidationError("Missing required field: videoUrl", hint=_MISSING_VIDEO_URL_HINT)
    _require_http_url(request.video_url, "videoUrl")

    metadata = request.video_metadata
    if not request.upload_url and (metadata is None or metadata.snippet is None):
      raise UploadValidationError("Missing uploadUrl and videoMetadata.snippet", hint=_MISSING_DESTINATION_HINT)
    if request.upload_url:
      _require_http_url(request.upload_url, "uploadUrl")

    credential_request = CredentialRequest(
      authorization=authorization,
      oauth_token=request.oauth_token,
      client_id=request.client_id,
      client_secret=request.client_secret,
      refresh_token=request.refresh_token,
    )
    access_token = await resolve_access_token(credential_request, client=self.client, settings=self.settings, store=self.credentials)

    content_type = request.content_type or self.settings.default_content_type
    content_length = request.content_length
    upload_url = request.upload_url
    if not upload_url:
      # The session advertises the total size, so it has to be known up front here.
      content_length = await resolve_content_length(self.client, request.video_url, content_length, timeout=self.settings.probe_timeout_seconds)
      upload_url = await create_resumable_session(
        self.client,
        access_token,
        metadata.to_resource(),
        content_type,
        content_length,
        endpoint=self.settings.youtube_upload_endpoint,
        timeout=self.settings.session_timeout_seconds,
      )

    record = UploadJob(
      id=generate_job_id(),
      status="pending",
      created_at=self._clock(),
      video_url=request.video_url,
      video_metadata=metadata.to_resource() if metadata is not None else None,
    )
    self.registry.create_job(record)
    logger.info("Created upload job job_id=%s sync=%s negotiated=%s", record.id, request.sync, request.upload_url is None)

    destination = _Destination(video_url=request.video_url, upload_url=upload_url, access_token=access_token, content_type=content_type)
    self.runner.launch(record.id, self._run_job(record.id, destination, known_length=content_length))
    return record

  def get_job(self, job_id: str) -> UploadJob:
    """Return the current snapshot of a job."""
    record = self.registry.get_job(job_id)
    if record is None:
      raise JobNotFoundError(job_id)
    return record

  async def wait_for_job(self, job_id: str) -> UploadJob:
    """Block until the job reaches a terminal status and return that record."""
    final = await self.runner.join(job_id)
    if isinstance(final, UploadJob):
      return final
    return self.get_job(job_id)

  async def _run_job(self, job_id: str, destination: _Destination, *, known_length: int | None) -> UploadJob | None:
    phase = "pending"
    try:
      phase = "downloading"
      self.registry.update_job(job_id, status="downloading")
      content_length = await resolve_content_length(self.client, destination.video_url, known_length, timeout=self.settings.probe_timeout_seconds)

      phase = "uploading"
      self.registry.update_job(job_id, status="uploading")
      plan = TransferPlan(video_url=destination.video_url, upload_url=destination.upload_url, access_token=destination.access_token, content_type=destination.content_type, content_length=content_length)

      async def _attempt(attempt: int) -> TransferResult:
        logger.info("Upload attempt %d/%d job_id=%s bytes=%d", attempt, self.retry_policy.max_attempts, job_id, content_length)
        return await stream_upload(self.client, plan, timeouts=self.transfer_timeouts)

      result = await retry_with_backoff(_attempt, self.retry_policy, sleep=self._sleep, on_attempt=lambda attempt: self.registry.update_job(job_id, attempts=attempt))

      try:
        record = self.registry.update_job(job_id, status="completed", completed_at=self._clock(), result=result)
      except JobTransitionError as exc:
        # The destination accepted the video; only the status record is gone.
        logger.warning("Upload completed but job record was evicted job_id=%s video_id=%s: %s", job_id, result.video_id, exc)
        return None
      logger.info("Upload completed job_id=%s video_id=%s attempts=%d", job_id, result.video_id, record.attempts)
      return record

    except asyncio.CancelledError:
      self._record_failure(job_id, phase, JobError(kind="Cancelled", message="Upload cancelled before completion"))
      raise

    except Exception as exc:
      logger.error("Upload failed job_id=%s phase=%s error_type=%s error=%s", job_id, phase, type(exc).__name__, exc)
      return self._record_failure(job_id, phase, JobError.from_exception(exc))

  def _record_failure(self, job_id: str, phase: str, error: JobError) -> UploadJob | None:
    try:
      return self.registry.update_job(job_id, status="failed", completed_at=self._clock(), error=error)
    except JobTransitionError as exc:
      # Evicted or already terminal; nothing left to record on.
      logger.warning("Could not record failure job_id=%s phase=%s kind=%s: %s", job_id, phase, error.kind, exc)
      return None
