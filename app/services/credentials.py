"""Access credential resolution for upload requests."""

from __future__ import annotations

import logging
import re
import secrets
import threading
from dataclasses import dataclass

import httpx

from app.config import Settings
from app.jobs.errors import AuthResolutionError
from app.services.youtube.oauth import OAuthExchangeError, exchange_refresh_token

logger = logging.getLogger(__name__)

_BEARER_RE = re.compile(r"^Bearer\s+", re.IGNORECASE)

_AUTH_OPTIONS = "Use Authorization: Bearer <token>, or body oauthToken, or (clientId + clientSecret + refreshToken)"


class CredentialStore:
  """Holds the refresh token obtained through the in-app OAuth flow.

  Lives on the application state for the lifetime of the process; nothing
  is written to disk.
  """

  def __init__(self, refresh_token: str | None = None) -> None:
    self._refresh_token = refresh_token
    self._lock = threading.Lock()

  @property
  def refresh_token(self) -> str | None:
    with self._lock:
      return self._refresh_token

  @property
  def connected(self) -> bool:
    return self.refresh_token is not None

  def store_refresh_token(self, refresh_token: str) -> None:
    with self._lock:
      self._refresh_token = refresh_token

  def clear(self) -> None:
    with self._lock:
      self._refresh_token = None


@dataclass(frozen=True)
class CredentialRequest:
  """Credential-bearing fields of an upload request."""

  authorization: str | None = None
  oauth_token: str | None = None
  client_id: str | None = None
  client_secret: str | None = None
  refresh_token: str | None = None


def bearer_token(authorization: str | None) -> str | None:
  """Extract the token from an ``Authorization: Bearer`` header value."""
  if not authorization or not _BEARER_RE.match(authorization):
    return None
  token = _BEARER_RE.sub("", authorization).strip()
  return token or None


async def resolve_access_token(credentials: CredentialRequest, *, client: httpx.AsyncClient, settings: Settings, store: CredentialStore) -> str:
  """
  Resolve the YouTube access token, first match wins:

  1. bearer token in the Authorization header
  2. ``oauthToken`` in the body
  3. ``clientId`` + ``clientSecret`` + ``refreshToken`` in the body, exchanged
  4. the stored refresh token from the OAuth flow, exchanged with the service credentials
  """
  header_token = bearer_token(credentials.authorization)
  # The service API key may travel in the same header; it is never a YouTube token.
  if header_token and not (settings.api_key and secrets.compare_digest(header_token, settings.api_key)):
    return header_token

  if credentials.oauth_token:
    return credentials.oauth_token

  if credentials.client_id and credentials.client_secret and credentials.refresh_token:
    try:
      return await exchange_refresh_token(client, client_id=credentials.client_id, client_secret=credentials.client_secret, refresh_token=credentials.refresh_token, token_url=settings.oauth_token_url)
    except OAuthExchangeError as exc:
      logger.warning("Refresh token exchange failed for body credentials: %s", exc)
      raise AuthResolutionError(f"Failed to get access token from refresh token: {exc}", kind="AuthExchangeFailed") from exc

  stored_refresh_token = store.refresh_token
  if stored_refresh_token and settings.youtube_client_id and settings.youtube_client_secret:
    try:
      return await exchange_refresh_token(client, client_id=settings.youtube_client_id, client_secret=settings.youtube_client_secret, refresh_token=stored_refresh_token, token_url=settings.oauth_token_url)
    except OAuthExchangeError as exc:
      logger.warning("Stored refresh token exchange failed: %s", exc)
      raise AuthResolutionError(f"Stored token expired or invalid. Visit /auth/youtube again to reconnect. ({exc})", kind="AuthExchangeFailed", http_status=401) from exc

  raise AuthResolutionError("Missing auth", kind="MissingAuth", hint=_AUTH_OPTIONS)
