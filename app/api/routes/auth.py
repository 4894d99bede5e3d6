import html
import logging

import httpx
from fastapi import APIRouter, Depends, status
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from app.api.deps import get_credential_store, get_http_client
from app.api.models import AuthStatusResponse
from app.config import Settings, get_settings
from app.services.credentials import CredentialStore
from app.services.youtube.oauth import OAuthExchangeError, build_authorization_url, exchange_authorization_code

router = APIRouter()
logger = logging.getLogger("app.api.routes.auth")

_SETUP_HINT = "Set RELAY_YOUTUBE_CLIENT_ID and RELAY_YOUTUBE_CLIENT_SECRET, then add the redirect URI to the Google Console"


def _page(title: str, message: str, *, status_code: int) -> HTMLResponse:
  return HTMLResponse(f"<h1>{html.escape(title)}</h1><p>{html.escape(message)}</p>", status_code=status_code)


@router.get("/auth/youtube", response_model=None)
async def start_youtube_auth(settings: Settings = Depends(get_settings)) -> RedirectResponse | JSONResponse:  # noqa: B008
  """Redirect to the Google consent screen to connect a YouTube channel."""
  if not settings.youtube_client_id:
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": "RELAY_YOUTUBE_CLIENT_ID not set", "hint": _SETUP_HINT})

  url = build_authorization_url(settings.youtube_client_id, settings.oauth_redirect_uri, authorize_url=settings.oauth_authorize_url)
  return RedirectResponse(url, status_code=status.HTTP_302_FOUND)


@router.get("/auth/youtube/callback", response_class=HTMLResponse)
async def youtube_auth_callback(  # noqa: B008
  code: str | None = None,
  error: str | None = None,
  settings: Settings = Depends(get_settings),  # noqa: B008
  client: httpx.AsyncClient = Depends(get_http_client),  # noqa: B008
  store: CredentialStore = Depends(get_credential_store),  # noqa: B008
) -> HTMLResponse:
  """Exchange the authorization code and keep the refresh token for later uploads."""
  if error:
    logger.warning("OAuth consent returned error=%s", error)
    return _page("OAuth Error", error, status_code=status.HTTP_400_BAD_REQUEST)

  if not code or not settings.oauth_configured:
    return _page("Missing code or credentials", "The callback needs a code and configured client credentials.", status_code=status.HTTP_400_BAD_REQUEST)

  try:
    payload = await exchange_authorization_code(
      client,
      client_id=settings.youtube_client_id,
      client_secret=settings.youtube_client_secret,
      code=code,
      redirect_uri=settings.oauth_redirect_uri,
      token_url=settings.oauth_token_url,
    )
  except OAuthExchangeError as exc:
    logger.error("Authorization code exchange failed: %s", exc)
    return _page("Error", str(exc), status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

  refresh_token = payload.get("refresh_token")
  if not refresh_token:
    detail = payload.get("error_description") or payload.get("error") or "Token response did not include a refresh token."
    return _page("No refresh token", str(detail), status_code=status.HTTP_400_BAD_REQUEST)

  store.store_refresh_token(str(refresh_token))
  logger.info("YouTube account connected; refresh token stored")
  return _page("Success", "YouTube is now connected. You can close this page; upload requests no longer need tokens.", status_code=status.HTTP_200_OK)


@router.get("/auth/status", response_model=AuthStatusResponse)
async def auth_status(store: CredentialStore = Depends(get_credential_store)) -> AuthStatusResponse:  # noqa: B008
  """Report whether a YouTube refresh token is stored."""
  return AuthStatusResponse(connected=store.connected)
