import logging

from fastapi import APIRouter, Depends, Header, Request, status
from fastapi.responses import JSONResponse

from app.api.deps import get_upload_service
from app.api.models import JobAcceptedResponse, JobStatusResponse, UploadRequest
from app.core.security import require_api_key
from app.services.uploads import UploadService

router = APIRouter()
logger = logging.getLogger("app.api.routes.uploads")


@router.post(
  "/upload",
  status_code=status.HTTP_202_ACCEPTED,
  response_model=JobAcceptedResponse,
  responses={201: {"model": JobStatusResponse}, 500: {"model": JobStatusResponse}},
  dependencies=[Depends(require_api_key)],
)
async def create_upload(  # noqa: B008
  payload: UploadRequest,
  request: Request,
  service: UploadService = Depends(get_upload_service),  # noqa: B008
  authorization: str | None = Header(default=None),
) -> JSONResponse:
  """
  Relay ``videoUrl`` into a YouTube resumable upload session.

  Asynchronous by default: answers 202 with a poll URL as soon as the job
  exists. With ``sync`` the call waits for the terminal record and answers
  201 on completion, 500 on failure.
  """
  record = await service.create_job(payload, authorization=authorization)

  if not payload.sync:
    poll_url = str(request.url_for("get_job_status", job_id=record.id))
    ack = JobAcceptedResponse(job_id=record.id, message="Upload started in background. Poll the job URL for status.", poll_url=poll_url)
    return JSONResponse(status_code=status.HTTP_202_ACCEPTED, content=ack.model_dump(mode="json", by_alias=True))

  final = await service.wait_for_job(record.id)
  body = JobStatusResponse.from_record(final).model_dump(mode="json", by_alias=True)
  if final.status == "completed":
    return JSONResponse(status_code=status.HTTP_201_CREATED, content=body)

  logger.warning("Synchronous upload did not complete job_id=%s status=%s", final.id, final.status)
  return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)
