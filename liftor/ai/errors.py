"""Errors raised by plan generation backends."""

from __future__ import annotations

from typing import Literal

GenerationStage = Literal["generation", "verification", "validation"]


class PlanGenerationError(RuntimeError):
  """Base error for any failure to produce a plan."""


class BasePlanGenerationError(PlanGenerationError):
  """Plan generation failed at a known pipeline stage."""

  def __init__(self, message: str, stage: GenerationStage, details: list[str] | None = None, attempt: int | None = None) -> None:
    super().__init__(message)
    self.stage = stage
    self.details = list(details or [])
    self.attempt = attempt

  def __repr__(self) -> str:
    return f"BasePlanGenerationError(stage={self.stage!r}, message={str(self)!r}, attempt={self.attempt!r})"
