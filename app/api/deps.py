"""Shared FastAPI dependencies for the relay services held on application state."""

from __future__ import annotations

import httpx
from fastapi import Request

from app.services.credentials import CredentialStore
from app.services.uploads import UploadService


def get_upload_service(request: Request) -> UploadService:
  """Return the upload service created by the lifespan."""
  return request.app.state.upload_service


def get_credential_store(request: Request) -> CredentialStore:
  """Return the process-wide credential store."""
  return request.app.state.credential_store


def get_http_client(request: Request) -> httpx.AsyncClient:
  """Return the shared outbound HTTP client."""
  return request.app.state.http_client
