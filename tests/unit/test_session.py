from __future__ import annotations

import json

import httpx
import pytest

from app.jobs.errors import SessionNegotiationError
from app.services.youtube.session import create_resumable_session
from tests.fakes import UPLOAD_URL, FakeUpstream

METADATA = {"snippet": {"title": "Launch day"}, "status": {"privacyStatus": "private"}}


@pytest.mark.anyio
async def test_session_url_comes_from_location_header(http_client: httpx.AsyncClient, upstream: FakeUpstream) -> None:
  session_url = await create_resumable_session(http_client, "ya29.token", METADATA, "video/mp4", 4096)

  assert session_url == UPLOAD_URL
  [request] = upstream.requests_for("POST", "www.googleapis.com")
  assert request.url.params["uploadType"] == "resumable"
  assert request.url.params["part"] == "snippet,status"
  assert request.headers["authorization"] == "Bearer ya29.token"
  assert request.headers["x-upload-content-type"] == "video/mp4"
  assert request.headers["x-upload-content-length"] == "4096"
  assert json.loads(request.content) == METADATA


@pytest.mark.anyio
async def test_unknown_length_is_not_advertised(http_client: httpx.AsyncClient, upstream: FakeUpstream) -> None:
  await create_resumable_session(http_client, "ya29.token", METADATA, "video/webm", None)

  [request] = upstream.requests_for("POST", "www.googleapis.com")
  assert "x-upload-content-length" not in request.headers


@pytest.mark.anyio
async def test_missing_location_fails_with_status_and_body(http_client: httpx.AsyncClient, upstream: FakeUpstream) -> None:
  upstream.session_location = None
  upstream.session_status = 403

  with pytest.raises(SessionNegotiationError) as excinfo:
    await create_resumable_session(http_client, "ya29.token", METADATA, "video/webm", 10)

  assert excinfo.value.status_code == 403
  assert "quota exceeded" in excinfo.value.body
  assert excinfo.value.to_payload()["statusCode"] == 403


@pytest.mark.anyio
async def test_transport_failure_is_negotiation_error() -> None:
  def _refuse(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)

  async with httpx.AsyncClient(transport=httpx.MockTransport(_refuse)) as client:
    with pytest.raises(SessionNegotiationError, match="Session request failed"):
      await create_resumable_session(client, "ya29.token", METADATA, "video/webm", 10)


@pytest.mark.anyio
async def test_malformed_endpoint_is_negotiation_error(http_client: httpx.AsyncClient, upstream: FakeUpstream) -> None:
  with pytest.raises(SessionNegotiationError, match="Session request failed"):
    await create_resumable_session(http_client, "ya29.token", METADATA, "video/webm", 10, endpoint="http://[::1")

  assert upstream.requests == []
