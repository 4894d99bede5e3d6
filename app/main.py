from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import auth, health, jobs, uploads
from app.config import get_settings
from app.core.exceptions import global_exception_handler, http_exception_handler, request_validation_exception_handler, upload_pipeline_exception_handler
from app.core.lifespan import lifespan
from app.core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from app.jobs.errors import UploadPipelineError

settings = get_settings()

app = FastAPI(title="YouTube Video Relay", version="0.1.0", lifespan=lifespan, docs_url="/docs" if settings.debug else None, redoc_url=None)

if settings.allowed_origins:
  app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.allowed_origins),
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["content-type", "authorization", "x-api-key", "api-key"],
    expose_headers=["content-length", "x-request-id"],
  )


# Add exception handlers
app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(UploadPipelineError, upload_pipeline_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)

# Add middleware
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)

app.include_router(health.router, tags=["health"])
app.include_router(uploads.router, tags=["uploads"])
app.include_router(jobs.router, tags=["jobs"])
app.include_router(auth.router, tags=["auth"])


if __name__ == "__main__":
  import uvicorn

  uvicorn.run("app.main:app", host="0.0.0.0", port=settings.port)
