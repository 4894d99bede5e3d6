"""Google OAuth token service used to obtain YouTube access tokens."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlencode

import httpx

from app.config import DEFAULT_OAUTH_AUTHORIZE_URL, DEFAULT_OAUTH_TOKEN_URL

logger = logging.getLogger(__name__)

YOUTUBE_SCOPES = ("https://www.googleapis.com/auth/youtube.upload", "https://www.googleapis.com/auth/youtube")


class OAuthExchangeError(Exception):
  """Token endpoint did not return the expected credential."""


def build_authorization_url(client_id: str, redirect_uri: str, *, authorize_url: str = DEFAULT_OAUTH_AUTHORIZE_URL) -> str:
  """Return the consent-screen URL requesting offline access for uploads."""
  query = urlencode(
    {
      "client_id": client_id,
      "redirect_uri": redirect_uri,
      "response_type": "code",
      "scope": " ".join(YOUTUBE_SCOPES),
      "access_type": "offline",
      "prompt": "consent",
    }
  )
  return f"{authorize_url}?{query}"


async def _post_token_form(client: httpx.AsyncClient, token_url: str, form: dict[str, str]) -> dict[str, Any]:
  try:
    response = await client.post(token_url, data=form, headers={"Content-Type": "application/x-www-form-urlencoded"}, timeout=30.0)
  except httpx.HTTPError as exc:
    raise OAuthExchangeError(f"Token request failed: {exc}") from exc

  try:
    payload = response.json()
  except ValueError as exc:
    raise OAuthExchangeError(f"Token response parse error: {response.text}") from exc

  if not isinstance(payload, dict):
    raise OAuthExchangeError(f"Token response parse error: {response.text}")
  return payload


async def exchange_refresh_token(client: httpx.AsyncClient, *, client_id: str, client_secret: str, refresh_token: str, token_url: str = DEFAULT_OAUTH_TOKEN_URL) -> str:
  """Exchange a refresh token for a short-lived access token."""
  payload = await _post_token_form(
    client,
    token_url,
    {"client_id": client_id, "client_secret": client_secret, "refresh_token": refresh_token, "grant_type": "refresh_token"},
  )
  access_token = payload.get("access_token")
  if not access_token:
    raise OAuthExchangeError(str(payload.get("error_description") or payload.get("error") or "No access_token in response"))
  return str(access_token)


async def exchange_authorization_code(client: httpx.AsyncClient, *, client_id: str, client_secret: str, code: str, redirect_uri: str, token_url: str = DEFAULT_OAUTH_TOKEN_URL) -> dict[str, Any]:
  """Exchange an authorization code; the returned payload may carry a refresh token."""
  payload = await _post_token_form(
    client,
    token_url,
    {"client_id": client_id, "client_secret": client_secret, "code": code, "grant_type": "authorization_code", "redirect_uri": redirect_uri},
  )
  if payload.get("error"):
    logger.warning("Authorization code exchange rejected error=%s", payload.get("error"))
  return payload
