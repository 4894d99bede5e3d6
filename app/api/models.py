from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr
from pydantic.alias_generators import to_camel

from app.jobs.models import JobStatus, UploadJob

_CAMEL_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class VideoSnippet(BaseModel):
  """Subset of the YouTube ``snippet`` resource accepted from callers."""

  title: StrictStr = Field(min_length=1, max_length=100)
  description: StrictStr | None = Field(default=None, max_length=5000)
  tags: list[StrictStr] | None = None
  category_id: StrictStr | None = None
  default_language: StrictStr | None = None
  default_audio_language: StrictStr | None = None
  model_config = _CAMEL_CONFIG


class VideoStatus(BaseModel):
  """Subset of the YouTube ``status`` resource accepted from callers."""

  privacy_status: Literal["public", "private", "unlisted"] | None = None
  embeddable: StrictBool | None = None
  license: Literal["youtube", "creativeCommon"] | None = None
  public_stats_viewable: StrictBool | None = None
  publish_at: datetime | None = None
  self_declared_made_for_kids: StrictBool | None = None
  contains_synthetic_media: StrictBool | None = None
  model_config = _CAMEL_CONFIG


class VideoMetadata(BaseModel):
  """Video resource body sent when negotiating an upload session."""

  snippet: VideoSnippet | None = None
  status: VideoStatus | None = None
  model_config = _CAMEL_CONFIG

  def to_resource(self) -> dict[str, Any]:
    """Return the JSON body expected by the videos.insert endpoint."""
    return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class UploadRequest(BaseModel):
  """Request payload for relaying a video into a YouTube upload session."""

  video_url: StrictStr | None = Field(default=None, description="URL the video bytes are downloaded from.")
  upload_url: StrictStr | None = Field(default=None, description="Resumable session URL; negotiated from videoMetadata when omitted.")
  oauth_token: StrictStr | None = Field(default=None, description="YouTube OAuth 2.0 access token.")
  client_id: StrictStr | None = None
  client_secret: StrictStr | None = None
  refresh_token: StrictStr | None = None
  video_metadata: VideoMetadata | None = None
  content_length: int | None = Field(default=None, ge=0, description="Total size in bytes; skips the HEAD probe when provided.")
  content_type: StrictStr | None = Field(default=None, description="Upload content type; defaults to the configured type.")
  sync: StrictBool = Field(default=False, description="Wait for the upload to finish before responding.")
  model_config = _CAMEL_CONFIG


class JobAcceptedResponse(BaseModel):
  """Acknowledgement returned for asynchronous uploads."""

  job_id: str
  status: Literal["accepted"] = "accepted"
  message: str
  poll_url: str
  model_config = _CAMEL_CONFIG


class JobResultPayload(BaseModel):
  status_code: int
  video_id: str | None = None
  raw_response: str | None = None
  model_config = _CAMEL_CONFIG


class JobErrorPayload(BaseModel):
  kind: str
  message: str
  status_code: int | None = None
  code: str | None = None
  model_config = _CAMEL_CONFIG


class JobStatusResponse(BaseModel):
  """Job record as exposed to polling callers."""

  id: str
  status: JobStatus
  created_at: datetime
  completed_at: datetime | None = None
  video_url: str
  video_metadata: dict[str, Any] | None = None
  attempts: int = 0
  result: JobResultPayload | None = None
  error: JobErrorPayload | None = None
  model_config = _CAMEL_CONFIG

  @classmethod
  def from_record(cls, record: UploadJob) -> JobStatusResponse:
    result = None
    if record.result is not None:
      result = JobResultPayload(status_code=record.result.status_code, video_id=record.result.video_id, raw_response=record.result.raw_response)

    error = None
    if record.error is not None:
      error = JobErrorPayload(kind=record.error.kind, message=record.error.message, status_code=record.error.status_code, code=record.error.code)

    return cls(
      id=record.id,
      status=record.status,
      created_at=record.created_at,
      completed_at=record.completed_at,
      video_url=record.video_url,
      video_metadata=record.video_metadata,
      attempts=record.attempts,
      result=result,
      error=error,
    )


class AuthStatusResponse(BaseModel):
  connected: bool
