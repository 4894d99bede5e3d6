"""Single streaming relay attempt from a source URL to a resumable upload session."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from app.jobs.errors import CODE_CONNECTION_REFUSED, CODE_CONNECTION_RESET, CODE_TIMEOUT, CODE_TRANSPORT, TransferError
from app.jobs.models import TransferResult
from app.services.youtube.source import IDENTITY_HEADERS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransferPlan:
  """Everything one relay attempt needs; reused unchanged across retries."""

  video_url: str
  upload_url: str
  access_token: str
  content_type: str
  content_length: int


@dataclass(frozen=True)
class TransferTimeouts:
  """Timeouts for the two legs of a relay attempt, in seconds."""

  download_idle: float = 60.0
  upload_connect: float = 30.0
  upload_response: float = 300.0


def classify_transport_error(exc: httpx.HTTPError) -> TransferError:
  """Map an httpx failure on either leg to a TransferError with a transport code."""
  if isinstance(exc, httpx.TimeoutException):
    code = CODE_TIMEOUT
  elif isinstance(exc, httpx.ConnectError):
    code = CODE_CONNECTION_REFUSED
  elif isinstance(exc, httpx.ReadError | httpx.WriteError | httpx.RemoteProtocolError):
    code = CODE_CONNECTION_RESET
  else:
    code = CODE_TRANSPORT

  return TransferError(f"{type(exc).__name__}: {exc}" if str(exc) else type(exc).__name__, code=code)


def _resolve_upload_response(response: httpx.Response) -> TransferResult:
  body = response.text
  status_code = response.status_code

  if status_code in (200, 201):
    video_id = None
    try:
      payload = response.json()
    except ValueError:
      payload = None
    if isinstance(payload, dict) and payload.get("id"):
      video_id = str(payload["id"])
    return TransferResult(status_code=status_code, video_id=video_id, raw_response=body or None)

  if status_code == 308:
    # Whole-transfer retry; the session's partial-resume offset is not used.
    raise TransferError("Upload incomplete (308), will retry", status_code=308, body=body)

  raise TransferError(f"YouTube upload failed: HTTP {status_code} - {body}", status_code=status_code, body=body)


async def stream_upload(client: httpx.AsyncClient, plan: TransferPlan, *, timeouts: TransferTimeouts | None = None) -> TransferResult:
  """
  Pipe the source body into a PUT against the upload session.

  Bytes flow chunk by chunk from the source response into the request body,
  so memory use is bounded by the chunk size. The source stream is closed on
  every exit path by the ``async with`` block.
  """
  timeouts = timeouts or TransferTimeouts()
  download_timeout = httpx.Timeout(timeouts.download_idle)
  upload_timeout = httpx.Timeout(timeouts.upload_connect, read=timeouts.upload_response, write=timeouts.download_idle)
  upload_headers = {
    "Authorization": f"Bearer {plan.access_token}",
    "Content-Type": plan.content_type,
    "Content-Length": str(plan.content_length),
  }

  try:
    async with client.stream("GET", plan.video_url, headers=IDENTITY_HEADERS, follow_redirects=True, timeout=download_timeout) as source:
      if source.status_code >= 400:
        raise TransferError(f"Failed to download video: HTTP {source.status_code}", kind="SourceFetchError")

      logger.debug("Relaying %d bytes of %s", plan.content_length, plan.content_type)
      response = await client.put(plan.upload_url, content=source.aiter_bytes(), headers=upload_headers, timeout=upload_timeout)
  except httpx.InvalidURL as exc:
    raise TransferError(f"Invalid URL: {exc}") from exc
  except httpx.HTTPError as exc:
    raise classify_transport_error(exc) from exc

  return _resolve_upload_response(response)
