"""State carried by one generation session and the persisted background job state."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Literal

JobStatus = Literal["pending", "ready", "error"]
BackgroundStatus = Literal["idle", "pending", "ready", "error"]


class GenerationOutcome(StrEnum):
  """What a call to generate_plan() ended up doing."""

  READY = "ready"
  FALLBACK = "fallback"
  SKIPPED_EXISTING = "skipped_existing"
  JOINED = "joined"
  BLOCKED = "blocked"
  FAILED = "failed"


@dataclass
class GenerationJob:
  """Ephemeral per-session job; discarded when the session closes."""

  status: JobStatus = "pending"
  retry_count: int = 0
  last_retry_time_ms: int | None = None
  elapsed_seconds: float = 0.0
  started_at_ms: int | None = None
  error_message: str | None = None

  def reset(self) -> None:
    """Return to pending and clear timing and error fields; retry bookkeeping is kept."""
    self.status = "pending"
    self.elapsed_seconds = 0.0
    self.started_at_ms = None
    self.error_message = None


@dataclass
class BasePlanJobState:
  """Persisted background base-plan job state, one row per user."""

  user_id: str
  status: BackgroundStatus = "idle"
  job_id: str | None = None
  started_at: str | None = None
  completed_at: str | None = None
  error: str | None = None
  verified: bool = False
  plan_id: str | None = None

  @classmethod
  def idle(cls, user_id: str, error: str | None = None) -> BasePlanJobState:
    return cls(user_id=user_id, status="idle", error=error)
