import logging

from fastapi import APIRouter, Depends, status

from liftor.api.deps import get_services, get_user_id, get_user_profile
from liftor.api.models import JobCreateResponse, JobStateResponse
from liftor.core.lifespan import EngineServices
from liftor.plans.models import UserProfile

router = APIRouter()
logger = logging.getLogger("liftor.api.routes.plans")


@router.post("/base/jobs", response_model=JobCreateResponse, status_code=status.HTTP_202_ACCEPTED)
async def start_base_plan_job(  # noqa: B008
  user: UserProfile = Depends(get_user_profile),  # noqa: B008
  services: EngineServices = Depends(get_services),  # noqa: B008
) -> JobCreateResponse:
  """Start base-plan generation in the background and return the job id."""
  job_id = await services.background.start(user)
  return JobCreateResponse(job_id=job_id, status="pending")


@router.get("/base/jobs", response_model=JobStateResponse)
async def get_base_plan_job(  # noqa: B008
  user_id: str = Depends(get_user_id),  # noqa: B008
  services: EngineServices = Depends(get_services),  # noqa: B008
) -> JobStateResponse:
  """Fetch the caller's background generation state."""
  state = await services.background.get_state(user_id)
  return JobStateResponse.from_state(state)


@router.post("/base/jobs/retry", response_model=JobCreateResponse, status_code=status.HTTP_202_ACCEPTED)
async def retry_base_plan_job(  # noqa: B008
  user: UserProfile = Depends(get_user_profile),  # noqa: B008
  services: EngineServices = Depends(get_services),  # noqa: B008
) -> JobCreateResponse:
  """Reset and start again; rejected with 429 inside the minimum retry interval."""
  job_id = await services.background.retry(user)
  logger.info("Base plan job retried user_id=%s job_id=%s", user.id, job_id)
  return JobCreateResponse(job_id=job_id, status="pending")


@router.post("/base/jobs/verify", response_model=JobStateResponse)
async def verify_base_plan_job(  # noqa: B008
  user_id: str = Depends(get_user_id),  # noqa: B008
  services: EngineServices = Depends(get_services),  # noqa: B008
) -> JobStateResponse:
  """Mark the generated plan as reviewed."""
  state = await services.background.verify(user_id)
  return JobStateResponse.from_state(state)


@router.delete("/base/jobs", response_model=JobStateResponse)
async def cancel_base_plan_job(  # noqa: B008
  user_id: str = Depends(get_user_id),  # noqa: B008
  services: EngineServices = Depends(get_services),  # noqa: B008
) -> JobStateResponse:
  """Reset the caller's job to idle."""
  state = await services.background.cancel(user_id)
  return JobStateResponse.from_state(state)
