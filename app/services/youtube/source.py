"""Size resolution against the source location."""

from __future__ import annotations

import logging

import httpx

from app.jobs.errors import SizeUnavailableError

logger = logging.getLogger(__name__)

# Compressed transfer would make Content-Length disagree with the bytes we relay.
IDENTITY_HEADERS = {"Accept-Encoding": "identity"}

_SIZE_HINT = "Pass contentLength in the request body or make sure videoUrl returns Content-Length."


async def probe_content_length(client: httpx.AsyncClient, url: str, *, timeout: float = 15.0) -> int:
  """Issue a HEAD request (following redirects) and return the advertised length."""
  try:
    response = await client.head(url, headers=IDENTITY_HEADERS, follow_redirects=True, timeout=timeout)
  except httpx.TimeoutException as exc:
    raise SizeUnavailableError(f"HEAD request timeout after {timeout:g}s", hint=_SIZE_HINT) from exc
  except (httpx.HTTPError, httpx.InvalidURL) as exc:
    raise SizeUnavailableError(f"HEAD request failed: {exc}", hint=_SIZE_HINT) from exc

  if response.status_code >= 400:
    raise SizeUnavailableError(f"HEAD request returned HTTP {response.status_code}", hint=_SIZE_HINT)

  raw_length = response.headers.get("content-length")
  if raw_length is None:
    raise SizeUnavailableError("Source URL does not provide Content-Length. Pass contentLength in the request body.", hint=_SIZE_HINT)

  try:
    length = int(raw_length)
  except ValueError as exc:
    raise SizeUnavailableError(f"Source URL returned an invalid Content-Length: {raw_length!r}", hint=_SIZE_HINT) from exc

  if length < 0:
    raise SizeUnavailableError(f"Source URL returned an invalid Content-Length: {raw_length!r}", hint=_SIZE_HINT)

  logger.debug("Resolved content length url=%s final_url=%s length=%d", url, response.url, length)
  return length


async def resolve_content_length(client: httpx.AsyncClient, url: str, content_length: int | None, *, timeout: float = 15.0) -> int:
  """Return the caller-supplied length unchanged, otherwise probe the source."""
  if content_length is not None:
    return content_length
  return await probe_content_length(client, url, timeout=timeout)
