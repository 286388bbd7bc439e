from __future__ import annotations

from pydantic import BaseModel, ConfigDict, StrictStr
from pydantic.alias_generators import to_camel

from liftor.generation.models import BackgroundStatus, BasePlanJobState


class _ApiModel(BaseModel):
  model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class JobCreateResponse(_ApiModel):
  """Response payload for starting or retrying a background generation."""

  job_id: StrictStr
  status: BackgroundStatus


class JobStateResponse(_ApiModel):
  """Current background generation state for the caller."""

  status: BackgroundStatus
  job_id: StrictStr | None = None
  started_at: StrictStr | None = None
  completed_at: StrictStr | None = None
  error: StrictStr | None = None
  verified: bool = False
  plan_id: StrictStr | None = None

  @classmethod
  def from_state(cls, state: BasePlanJobState) -> JobStateResponse:
    return cls(status=state.status, job_id=state.job_id, started_at=state.started_at, completed_at=state.completed_at, error=state.error, verified=state.verified, plan_id=state.plan_id)
