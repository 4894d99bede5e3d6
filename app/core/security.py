from __future__ import annotations

import logging
import secrets
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from app.config import Settings, get_settings
from app.services.credentials import bearer_token

logger = logging.getLogger(__name__)

_API_KEY_HINT = "Send X-API-Key: <your-key> or Authorization: Bearer <your-key>"


def _matches(candidate: str | None, expected: str) -> bool:
  return bool(candidate) and secrets.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))


async def require_api_key(
  settings: Annotated[Settings, Depends(get_settings)],
  x_api_key: str | None = Header(default=None),
  api_key: str | None = Header(default=None),
  authorization: str | None = Header(default=None),
) -> None:
  """Reject the request unless it carries the configured service API key.

  Open access when no key is configured. The key is accepted from
  ``X-API-Key``, ``Api-Key`` or an ``Authorization: Bearer`` header.
  """
  expected = settings.api_key
  if not expected:
    return

  if _matches(x_api_key, expected) or _matches(api_key, expected) or _matches(bearer_token(authorization), expected):
    return

  logger.warning("Rejected request with missing or invalid API key")
  raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail={"error": "Invalid or missing API key", "hint": _API_KEY_HINT})
