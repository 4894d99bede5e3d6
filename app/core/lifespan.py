import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from app.config import Settings
from app.core.logging import _initialize_logging
from app.jobs.registry import InMemoryJobRegistry
from app.jobs.runner import UploadJobRunner
from app.services.credentials import CredentialStore
from app.services.uploads import UploadService

logger = logging.getLogger("app.core.lifespan")


async def _sweep_jobs(registry: InMemoryJobRegistry, interval_seconds: float) -> None:
  """Trim the registry to its retention cap on a fixed interval."""
  while True:
    await asyncio.sleep(interval_seconds)
    try:
      registry.sweep()
    except Exception:  # noqa: BLE001
      logger.warning("Job registry sweep failed.", exc_info=True)


def _log_endpoints(settings: Settings) -> None:
  base_url = settings.base_url.rstrip("/")
  logger.info("Video relay listening on port %d", settings.port)
  logger.info("  POST %s/upload - relay a video into a YouTube upload session", base_url)
  logger.info("  GET  %s/job/{job_id} - poll job status", base_url)
  logger.info("  GET  %s/health - health check", base_url)
  if settings.youtube_client_id:
    logger.info("  GET  %s/auth/youtube - connect a YouTube account (one-time setup)", base_url)
    logger.info("  Redirect URI for the Google Console: %s", settings.oauth_redirect_uri)
  else:
    logger.info("  OAuth setup disabled; set RELAY_YOUTUBE_CLIENT_ID and RELAY_YOUTUBE_CLIENT_SECRET to enable /auth/youtube")
  if not settings.api_key:
    logger.warning("RELAY_API_KEY is not set; upload and job endpoints are unauthenticated.")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Create the shared relay services and tear them down on shutdown."""
  from app.config import get_settings

  settings = get_settings()

  try:
    _initialize_logging(settings)
  except Exception:
    # Keep serving with the default handlers; uvicorn still logs to stderr.
    logger.warning("Initial logging setup failed.", exc_info=True)

  client = httpx.AsyncClient()
  registry = InMemoryJobRegistry(retention=settings.job_retention)
  credential_store = CredentialStore()
  runner = UploadJobRunner()
  app.state.http_client = client
  app.state.job_registry = registry
  app.state.credential_store = credential_store
  app.state.job_runner = runner
  app.state.upload_service = UploadService(settings=settings, client=client, registry=registry, runner=runner, credentials=credential_store)

  sweeper = asyncio.create_task(_sweep_jobs(registry, settings.job_sweep_interval_seconds), name="job-registry-sweep")
  _log_endpoints(settings)

  try:
    yield
  finally:
    sweeper.cancel()
    with contextlib.suppress(asyncio.CancelledError):
      await sweeper
    await runner.shutdown()
    await client.aclose()
    logger.info("Shutdown complete.")
