"""Shared fixtures: a fake upstream behind httpx.MockTransport and an app client wired to it."""

from __future__ import annotations

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from app.api.deps import get_credential_store, get_http_client, get_upload_service
from app.config import Settings, get_settings
from app.jobs.registry import InMemoryJobRegistry
from app.jobs.runner import UploadJobRunner
from app.main import app
from app.services.credentials import CredentialStore
from app.services.uploads import UploadService
from tests.fakes import FakeUpstream, make_settings


@pytest.fixture
def anyio_backend() -> str:
  return "asyncio"


@pytest.fixture
def relay_settings() -> Settings:
  return make_settings()


@pytest.fixture
def upstream() -> FakeUpstream:
  return FakeUpstream()


@pytest.fixture
def sleeps() -> list[float]:
  return []


@pytest.fixture
async def http_client(upstream: FakeUpstream):
  async with httpx.AsyncClient(transport=upstream.transport()) as client:
    yield client


@pytest.fixture
async def upload_service(relay_settings: Settings, http_client: httpx.AsyncClient, sleeps: list[float]):
  async def _record_sleep(delay: float) -> None:
    sleeps.append(delay)

  runner = UploadJobRunner()
  service = UploadService(
    settings=relay_settings,
    client=http_client,
    registry=InMemoryJobRegistry(retention=relay_settings.job_retention),
    runner=runner,
    credentials=CredentialStore(),
    sleep=_record_sleep,
  )
  yield service
  await runner.shutdown()


@pytest.fixture
async def async_client(upload_service: UploadService, relay_settings: Settings):
  app.dependency_overrides[get_upload_service] = lambda: upload_service
  app.dependency_overrides[get_credential_store] = lambda: upload_service.credentials
  app.dependency_overrides[get_http_client] = lambda: upload_service.client
  app.dependency_overrides[get_settings] = lambda: relay_settings
  async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
    yield client
  app.dependency_overrides.clear()
