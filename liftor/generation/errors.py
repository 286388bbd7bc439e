"""Errors raised by the generation orchestration layer."""

from __future__ import annotations


class PreconditionError(RuntimeError):
  """A required input for plan generation is missing."""

  title = "Data Missing"
  redirect_route = "/(tabs)/home"


class MissingUserError(PreconditionError):
  def __init__(self, message: str = "Please complete your profile first.") -> None:
    super().__init__(message)


class MissingCheckinError(PreconditionError):
  def __init__(self, message: str = "Please complete your daily check-in first.") -> None:
    super().__init__(message)


class MissingBasePlanError(PreconditionError):
  title = "Base Plan Missing"
  redirect_route = "/onboarding"

  def __init__(self, message: str = "Please complete onboarding to generate your base plan first.") -> None:
    super().__init__(message)


class RetryTooSoonError(RuntimeError):
  """A retry was requested before the minimum interval elapsed."""

  def __init__(self, remaining_seconds: int, message: str) -> None:
    super().__init__(message)
    self.remaining_seconds = remaining_seconds
