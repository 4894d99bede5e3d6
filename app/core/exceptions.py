import logging
from typing import Any

from app.config import get_settings
from app.jobs.errors import UploadPipelineError
from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger("uvicorn.error")

_INTERNAL_ERROR = {"detail": "Internal Server Error"}


def _coerce_json_safe(value: Any) -> Any:
  """Convert values such as tuples and exceptions into JSON primitives."""
  if value is None or isinstance(value, bool | int | float | str):
    return value
  if isinstance(value, dict):
    return {str(key): _coerce_json_safe(item) for key, item in value.items()}
  if isinstance(value, list | tuple | set):
    return [_coerce_json_safe(item) for item in value]
  if isinstance(value, BaseException):
    return f"{type(value).__name__}: {value}" if str(value) else type(value).__name__
  return str(value)


def _error_payload(body: dict[str, Any], request: Request) -> dict[str, Any]:
  """Build every error body the API returns, tagged with the request id when one was assigned."""
  payload = _coerce_json_safe(body)
  request_id = getattr(request.state, "request_id", None)
  if request_id:
    payload["requestId"] = request_id
  return payload


def _sanitize_validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
  """Drop the raw ``input`` values pydantic attaches; request bodies carry OAuth secrets."""
  sanitized: list[dict[str, Any]] = []
  for error in errors:
    scrubbed = {key: value for key, value in error.items() if key != "input"}
    if isinstance(scrubbed.get("ctx"), dict):
      scrubbed["ctx"] = {key: value for key, value in scrubbed["ctx"].items() if key != "input"}
    sanitized.append(_coerce_json_safe(scrubbed))
  return sanitized


def _sanitize_http_detail(detail: Any) -> Any:
  """Strip upstream bodies and payload echoes from an HTTPException detail before logging it."""
  if isinstance(detail, dict):
    return {key: _sanitize_http_detail(value) for key, value in detail.items() if key not in {"input", "body", "payload", "content"}}
  if isinstance(detail, list):
    return [_sanitize_http_detail(item) for item in detail]
  return detail


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
  """Global exception handler to catch unhandled errors."""
  logger.error("Global exception request_id=%s path=%s error_type=%s", getattr(request.state, "request_id", None), request.url.path, type(exc).__name__, exc_info=True)
  return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=_error_payload(_INTERNAL_ERROR, request))


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
  """Log request validation errors for debugging without leaking payloads."""
  sanitized_errors = _sanitize_validation_errors(exc.errors())
  logger.warning("Request validation failed request_id=%s path=%s method=%s errors=%s", getattr(request.state, "request_id", None), request.url.path, request.method, sanitized_errors)
  return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=_error_payload({"detail": sanitized_errors}, request))


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
  """Handle FastAPI HTTPExceptions while avoiding leaking internal diagnostics."""
  request_id = getattr(request.state, "request_id", None)
  if exc.status_code >= 500:
    logger.error("HTTPException request_id=%s path=%s status_code=%s detail=%s", request_id, request.url.path, exc.status_code, _sanitize_http_detail(exc.detail))
    return JSONResponse(status_code=exc.status_code, content=_error_payload(_INTERNAL_ERROR, request))

  if get_settings().log_http_4xx:
    logger.warning("HTTPException request_id=%s path=%s status_code=%s detail=%s", request_id, request.url.path, exc.status_code, _sanitize_http_detail(exc.detail))

  # Dict details are already complete error bodies (e.g. the API key rejection).
  body = exc.detail if isinstance(exc.detail, dict) else {"detail": exc.detail}
  return JSONResponse(status_code=exc.status_code, content=_error_payload(body, request), headers=exc.headers)


async def upload_pipeline_exception_handler(request: Request, exc: UploadPipelineError) -> JSONResponse:
  """Render pipeline errors raised before a job exists as ``{error, message, hint?}``."""
  request_id = getattr(request.state, "request_id", None)
  if exc.http_status >= 500:
    logger.error("Upload pipeline failure request_id=%s path=%s error_type=%s", request_id, request.url.path, type(exc).__name__, exc_info=True)
    return JSONResponse(status_code=exc.http_status, content=_error_payload(_INTERNAL_ERROR, request))

  logger.warning("Upload request rejected request_id=%s path=%s kind=%s message=%s", request_id, request.url.path, exc.kind, exc.message)
  return JSONResponse(status_code=exc.http_status, content=_error_payload(exc.to_payload(), request))
