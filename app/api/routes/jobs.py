import logging

from fastapi import APIRouter, Depends

from app.api.deps import get_upload_service
from app.api.models import JobStatusResponse
from app.core.security import require_api_key
from app.services.uploads import UploadService

router = APIRouter()
logger = logging.getLogger("app.api.routes.jobs")


@router.get("/job/{job_id}", response_model=JobStatusResponse, response_model_by_alias=True, dependencies=[Depends(require_api_key)])
async def get_job_status(  # noqa: B008
  job_id: str,
  service: UploadService = Depends(get_upload_service),  # noqa: B008
) -> JobStatusResponse:
  """Fetch the status and result of an upload job."""
  return JobStatusResponse.from_record(service.get_job(job_id))
