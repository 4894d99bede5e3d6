"""Resumable upload session negotiation with the YouTube Data API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from app.config import DEFAULT_UPLOAD_ENDPOINT
from app.jobs.errors import SessionNegotiationError

logger = logging.getLogger(__name__)


async def create_resumable_session(
  client: httpx.AsyncClient,
  access_token: str,
  metadata: dict[str, Any],
  content_type: str,
  content_length: int | None,
  *,
  endpoint: str = DEFAULT_UPLOAD_ENDPOINT,
  timeout: float = 30.0,
) -> str:
  """Create a resumable upload session and return its URL from the Location header."""
  headers = {
    "Authorization": f"Bearer {access_token}",
    "Content-Type": "application/json; charset=UTF-8",
    "X-Upload-Content-Type": content_type,
  }
  if content_length is not None:
    headers["X-Upload-Content-Length"] = str(content_length)

  try:
    response = await client.post(endpoint, json=metadata, headers=headers, timeout=timeout)
  except (httpx.HTTPError, httpx.InvalidURL) as exc:
    raise SessionNegotiationError(f"Session request failed: {exc}") from exc

  location = response.headers.get("location")
  if location:
    logger.info("Negotiated resumable upload session status=%s", response.status_code)
    return location

  body = response.text
  logger.warning("Session negotiation returned no Location status=%s body=%s", response.status_code, body[:500])
  raise SessionNegotiationError(body or f"HTTP {response.status_code}", status_code=response.status_code, body=body)
