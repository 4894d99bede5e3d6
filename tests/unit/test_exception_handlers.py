"""Unit tests for API exception sanitization and pipeline error payloads."""

from __future__ import annotations

from fastapi import Request

from app.core.exceptions import _error_payload, _sanitize_http_detail, _sanitize_validation_errors
from app.jobs.errors import AuthResolutionError, JobNotFoundError, SessionNegotiationError, SizeUnavailableError, UploadValidationError


def test_sanitize_validation_errors_removes_input_and_serializes_exception_ctx() -> None:
  """Ensure validation errors stay JSON-serializable and redact raw request payloads."""
  errors = [{"type": "value_error", "loc": ("body", "sync"), "msg": "Input should be a valid boolean", "input": {"oauthToken": "ya29.secret"}, "ctx": {"error": ValueError("not a bool"), "input": "yes please"}}]
  sanitized = _sanitize_validation_errors(errors)
  assert "input" not in sanitized[0]
  assert sanitized[0]["loc"] == ["body", "sync"]
  assert sanitized[0]["ctx"]["error"] == "ValueError: not a bool"
  assert "input" not in sanitized[0]["ctx"]


def test_sanitize_http_detail_drops_body_keys() -> None:
  detail = {"error": "bad", "body": "raw upstream text", "nested": [{"payload": 1, "keep": 2}]}
  assert _sanitize_http_detail(detail) == {"error": "bad", "nested": [{"keep": 2}]}


def test_pipeline_error_payloads() -> None:
  """Pre-job errors render as {error, message, hint?} with their mapped status."""
  validation = UploadValidationError("Missing required field: videoUrl", hint="send videoUrl")
  assert validation.http_status == 400
  assert validation.to_payload() == {"error": "ValidationError", "message": "Missing required field: videoUrl", "hint": "send videoUrl"}

  size = SizeUnavailableError("no length")
  assert size.to_payload() == {"error": "SizeUnavailable", "message": "no length"}

  session = SessionNegotiationError("quota exceeded", status_code=403, body="quota exceeded")
  assert session.to_payload()["statusCode"] == 403

  expired = AuthResolutionError("expired", kind="AuthExchangeFailed", http_status=401)
  assert (expired.kind, expired.http_status) == ("AuthExchangeFailed", 401)

  missing = JobNotFoundError("job_1")
  assert missing.http_status == 404
  assert missing.to_payload() == {"error": "Job not found", "jobId": "job_1"}


def test_error_payload_tags_request_id_on_every_shape() -> None:
  request = Request({"type": "http", "state": {"request_id": "req-1"}})

  assert _error_payload(UploadValidationError("bad url").to_payload(), request) == {"error": "ValidationError", "message": "bad url", "requestId": "req-1"}
  assert _error_payload({"detail": "Internal Server Error"}, request) == {"detail": "Internal Server Error", "requestId": "req-1"}


def test_error_payload_without_request_id_is_json_safe() -> None:
  request = Request({"type": "http"})

  assert _error_payload({"detail": ("sync", ValueError("not a bool"))}, request) == {"detail": ["sync", "ValueError: not a bool"]}
