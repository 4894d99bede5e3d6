from __future__ import annotations

import httpx
import pytest

from app.jobs.errors import CODE_CONNECTION_REFUSED, CODE_CONNECTION_RESET, CODE_TIMEOUT, CODE_TRANSPORT, TransferError
from app.services.youtube.transfer import TransferPlan, classify_transport_error, stream_upload
from tests.fakes import SOURCE_HOST, SOURCE_URL, UPLOAD_URL, VIDEO_BYTES, VIDEO_ID, FakeUpstream


def _plan(**overrides: object) -> TransferPlan:
  values = {"video_url": SOURCE_URL, "upload_url": UPLOAD_URL, "access_token": "ya29.token", "content_type": "video/webm", "content_length": len(VIDEO_BYTES)}
  values.update(overrides)
  return TransferPlan(**values)


@pytest.mark.anyio
async def test_streams_source_bytes_into_put(http_client: httpx.AsyncClient, upstream: FakeUpstream) -> None:
  result = await stream_upload(http_client, _plan())

  assert result.status_code == 200
  assert result.video_id == VIDEO_ID
  assert upstream.uploaded_bodies == [VIDEO_BYTES]

  [put] = upstream.requests_for("PUT", "upload.example.com")
  assert put.headers["content-length"] == str(len(VIDEO_BYTES))
  assert put.headers["content-type"] == "video/webm"
  assert put.headers["authorization"] == "Bearer ya29.token"
  assert "transfer-encoding" not in put.headers

  [get] = upstream.requests_for("GET", SOURCE_HOST)
  assert get.headers["accept-encoding"] == "identity"


@pytest.mark.anyio
async def test_chunked_source_body_is_relayed_whole(http_client: httpx.AsyncClient, upstream: FakeUpstream) -> None:
  upstream.source_chunk_size = 1000

  result = await stream_upload(http_client, _plan())

  assert result.video_id == VIDEO_ID
  assert upstream.uploaded_bodies == [VIDEO_BYTES]


@pytest.mark.anyio
async def test_malformed_upload_url_is_fatal(http_client: httpx.AsyncClient, upstream: FakeUpstream) -> None:
  with pytest.raises(TransferError) as excinfo:
    await stream_upload(http_client, _plan(upload_url="http://[::1"))

  assert excinfo.value.message.startswith("Invalid URL")
  assert not excinfo.value.retryable
  assert upstream.upload_attempts == 0


@pytest.mark.anyio
async def test_created_without_json_body_is_success_without_id(http_client: httpx.AsyncClient, upstream: FakeUpstream) -> None:
  upstream.upload_outcomes = [httpx.Response(201, text="not json")]

  result = await stream_upload(http_client, _plan())

  assert result.status_code == 201
  assert result.video_id is None
  assert result.raw_response == "not json"


@pytest.mark.anyio
async def test_resume_incomplete_is_retryable(http_client: httpx.AsyncClient, upstream: FakeUpstream) -> None:
  upstream.upload_outcomes = [httpx.Response(308, headers={"range": "bytes=0-1023"})]

  with pytest.raises(TransferError) as excinfo:
    await stream_upload(http_client, _plan())

  assert excinfo.value.status_code == 308
  assert excinfo.value.retryable


@pytest.mark.anyio
async def test_client_error_is_fatal_and_keeps_body(http_client: httpx.AsyncClient, upstream: FakeUpstream) -> None:
  upstream.upload_outcomes = [httpx.Response(403, json={"error": {"message": "forbidden"}})]

  with pytest.raises(TransferError) as excinfo:
    await stream_upload(http_client, _plan())

  assert excinfo.value.status_code == 403
  assert not excinfo.value.retryable
  assert excinfo.value.message.startswith("YouTube upload failed: HTTP 403")
  assert "forbidden" in excinfo.value.body


@pytest.mark.anyio
async def test_source_error_stops_before_put(http_client: httpx.AsyncClient, upstream: FakeUpstream) -> None:
  upstream.source_status = 404

  with pytest.raises(TransferError) as excinfo:
    await stream_upload(http_client, _plan())

  assert excinfo.value.kind == "SourceFetchError"
  assert not excinfo.value.retryable
  assert upstream.upload_attempts == 0


@pytest.mark.anyio
async def test_reset_during_put_is_retryable(http_client: httpx.AsyncClient, upstream: FakeUpstream) -> None:
  upstream.upload_outcomes = [httpx.ReadError("connection reset by peer")]

  with pytest.raises(TransferError) as excinfo:
    await stream_upload(http_client, _plan())

  assert excinfo.value.code == CODE_CONNECTION_RESET
  assert excinfo.value.retryable


@pytest.mark.parametrize(
  ("exc", "code"),
  [
    (httpx.ReadTimeout("idle"), CODE_TIMEOUT),
    (httpx.ConnectTimeout("slow connect"), CODE_TIMEOUT),
    (httpx.ConnectError("refused"), CODE_CONNECTION_REFUSED),
    (httpx.ReadError("reset"), CODE_CONNECTION_RESET),
    (httpx.WriteError("broken pipe"), CODE_CONNECTION_RESET),
    (httpx.RemoteProtocolError("peer closed"), CODE_CONNECTION_RESET),
    (httpx.UnsupportedProtocol("ftp"), CODE_TRANSPORT),
  ],
)
def test_transport_error_codes(exc: httpx.HTTPError, code: str) -> None:
  assert classify_transport_error(exc).code == code
