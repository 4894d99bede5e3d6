"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from app.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)

DEFAULT_UPLOAD_ENDPOINT = "https://www.googleapis.com/upload/youtube/v3/videos?uploadType=resumable&part=snippet,status"
DEFAULT_OAUTH_TOKEN_URL = "https://oauth2.googleapis.com/token"
DEFAULT_OAUTH_AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"


@dataclass(frozen=True)
class Settings:
  """Typed settings for the video relay service."""

  debug: bool
  port: int
  base_url: str
  api_key: str | None
  allowed_origins: tuple[str, ...]
  youtube_client_id: str | None
  youtube_client_secret: str | None
  youtube_upload_endpoint: str
  oauth_token_url: str
  oauth_authorize_url: str
  default_content_type: str
  job_retention: int
  job_sweep_interval_seconds: float
  probe_timeout_seconds: float
  download_idle_timeout_seconds: float
  upload_connect_timeout_seconds: float
  upload_response_timeout_seconds: float
  session_timeout_seconds: float
  max_upload_attempts: int
  retry_base_delay_seconds: float
  retry_max_delay_seconds: float
  log_dir: str | None
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool

  @property
  def oauth_configured(self) -> bool:
    """Return True when the in-app OAuth flow can be used."""
    return bool(self.youtube_client_id and self.youtube_client_secret)

  @property
  def oauth_redirect_uri(self) -> str:
    """Return the callback URL registered with the Google console."""
    return f"{self.base_url.rstrip('/')}/auth/youtube/callback"


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    return ()

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if "*" in origins:
    raise ValueError("RELAY_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _positive_int(name: str, default: str) -> int:
  value = int(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive integer.")
  return value


def _positive_float(name: str, default: str) -> float:
  value = float(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive number.")
  return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  debug = _parse_bool(os.getenv("RELAY_DEBUG"))
  port = _positive_int("PORT", os.getenv("RELAY_PORT", "3000"))
  base_url = _optional_str(os.getenv("RELAY_BASE_URL")) or f"http://localhost:{port}"

  log_backup_count = int(os.getenv("RELAY_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("RELAY_LOG_BACKUP_COUNT must be zero or a positive integer.")

  retry_base_delay_seconds = _positive_float("RELAY_RETRY_BASE_DELAY_SECONDS", "1.0")
  retry_max_delay_seconds = _positive_float("RELAY_RETRY_MAX_DELAY_SECONDS", "10.0")
  if retry_max_delay_seconds < retry_base_delay_seconds:
    raise ValueError("RELAY_RETRY_MAX_DELAY_SECONDS must not be smaller than RELAY_RETRY_BASE_DELAY_SECONDS.")

  return Settings(
    debug=debug,
    port=port,
    base_url=base_url,
    api_key=_optional_str(os.getenv("RELAY_API_KEY")),
    allowed_origins=_parse_origins(os.getenv("RELAY_ALLOWED_ORIGINS")),
    youtube_client_id=_optional_str(os.getenv("RELAY_YOUTUBE_CLIENT_ID")),
    youtube_client_secret=_optional_str(os.getenv("RELAY_YOUTUBE_CLIENT_SECRET")),
    youtube_upload_endpoint=(os.getenv("RELAY_YOUTUBE_UPLOAD_ENDPOINT") or DEFAULT_UPLOAD_ENDPOINT).strip(),
    oauth_token_url=(os.getenv("RELAY_OAUTH_TOKEN_URL") or DEFAULT_OAUTH_TOKEN_URL).strip(),
    oauth_authorize_url=(os.getenv("RELAY_OAUTH_AUTHORIZE_URL") or DEFAULT_OAUTH_AUTHORIZE_URL).strip(),
    default_content_type=(os.getenv("RELAY_DEFAULT_CONTENT_TYPE") or "video/webm").strip(),
    job_retention=_positive_int("RELAY_JOB_RETENTION", "100"),
    job_sweep_interval_seconds=_positive_float("RELAY_JOB_SWEEP_INTERVAL_SECONDS", "60"),
    probe_timeout_seconds=_positive_float("RELAY_PROBE_TIMEOUT_SECONDS", "15"),
    download_idle_timeout_seconds=_positive_float("RELAY_DOWNLOAD_IDLE_TIMEOUT_SECONDS", "60"),
    upload_connect_timeout_seconds=_positive_float("RELAY_UPLOAD_CONNECT_TIMEOUT_SECONDS", "30"),
    upload_response_timeout_seconds=_positive_float("RELAY_UPLOAD_RESPONSE_TIMEOUT_SECONDS", "300"),
    session_timeout_seconds=_positive_float("RELAY_SESSION_TIMEOUT_SECONDS", "30"),
    max_upload_attempts=_positive_int("RELAY_MAX_UPLOAD_ATTEMPTS", "3"),
    retry_base_delay_seconds=retry_base_delay_seconds,
    retry_max_delay_seconds=retry_max_delay_seconds,
    log_dir=_optional_str(os.getenv("RELAY_LOG_DIR")),
    log_max_bytes=_positive_int("RELAY_LOG_MAX_BYTES", "5242880"),
    log_backup_count=log_backup_count,
    log_http_4xx=_parse_bool(os.getenv("RELAY_LOG_HTTP_4XX")),
  )


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value
