from __future__ import annotations

import httpx
import pytest

from app.jobs.errors import SizeUnavailableError
from app.services.youtube.source import probe_content_length, resolve_content_length
from tests.fakes import SOURCE_HOST, SOURCE_URL, VIDEO_BYTES, FakeUpstream


@pytest.mark.anyio
async def test_probe_returns_advertised_length(http_client: httpx.AsyncClient, upstream: FakeUpstream) -> None:
  length = await probe_content_length(http_client, SOURCE_URL)

  assert length == len(VIDEO_BYTES)
  head = upstream.requests_for("HEAD", SOURCE_HOST)
  assert len(head) == 1
  assert head[0].headers["accept-encoding"] == "identity"


@pytest.mark.anyio
async def test_probe_follows_redirects(http_client: httpx.AsyncClient, upstream: FakeUpstream) -> None:
  length = await probe_content_length(http_client, f"https://{SOURCE_HOST}/redirect")

  assert length == len(VIDEO_BYTES)
  assert [request.url.path for request in upstream.requests_for("HEAD", SOURCE_HOST)] == ["/redirect", "/videos/clip.webm"]


@pytest.mark.anyio
async def test_missing_length_is_size_unavailable(http_client: httpx.AsyncClient, upstream: FakeUpstream) -> None:
  upstream.advertise_length = False

  with pytest.raises(SizeUnavailableError) as excinfo:
    await probe_content_length(http_client, SOURCE_URL)

  assert "contentLength" in excinfo.value.message
  assert excinfo.value.hint


@pytest.mark.anyio
async def test_error_status_is_size_unavailable(http_client: httpx.AsyncClient, upstream: FakeUpstream) -> None:
  upstream.source_status = 403

  with pytest.raises(SizeUnavailableError, match="HTTP 403"):
    await probe_content_length(http_client, SOURCE_URL)


@pytest.mark.anyio
async def test_probe_timeout_is_size_unavailable() -> None:
  def _timeout(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectTimeout("timed out", request=request)

  async with httpx.AsyncClient(transport=httpx.MockTransport(_timeout)) as client:
    with pytest.raises(SizeUnavailableError, match="timeout"):
      await probe_content_length(client, SOURCE_URL, timeout=2.0)


@pytest.mark.anyio
async def test_invalid_length_header_is_size_unavailable() -> None:
  def _garbage(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, headers={"content-length": "lots"})

  async with httpx.AsyncClient(transport=httpx.MockTransport(_garbage)) as client:
    with pytest.raises(SizeUnavailableError, match="invalid Content-Length"):
      await probe_content_length(client, SOURCE_URL)


@pytest.mark.anyio
async def test_supplied_length_skips_probe(http_client: httpx.AsyncClient, upstream: FakeUpstream) -> None:
  length = await resolve_content_length(http_client, SOURCE_URL, 1234)

  assert length == 1234
  assert upstream.requests == []


@pytest.mark.anyio
async def test_zero_is_a_valid_supplied_length(http_client: httpx.AsyncClient, upstream: FakeUpstream) -> None:
  assert await resolve_content_length(http_client, SOURCE_URL, 0) == 0
  assert upstream.requests == []


@pytest.mark.anyio
async def test_malformed_url_is_size_unavailable(http_client: httpx.AsyncClient, upstream: FakeUpstream) -> None:
  with pytest.raises(SizeUnavailableError, match="HEAD request failed"):
    await probe_content_length(http_client, "http://[::1")

  assert upstream.requests == []
