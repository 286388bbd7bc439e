"""Pydantic models for profiles, check-ins and generated plans.

Plan payloads come from a remote generator and are stored as-is, so every model
allows extra fields. Only the handful of fields the engine reads are declared.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Goal = Literal["WEIGHT_LOSS", "MUSCLE_GAIN", "ENDURANCE", "GENERAL_FITNESS", "FLEXIBILITY_MOBILITY"]
CheckinMode = Literal["LOW", "HIGH", "PRO"]


class _CamelModel(BaseModel):
  """Accept camelCase payloads and snake_case keyword arguments alike."""

  model_config = ConfigDict(extra="allow", alias_generator=to_camel, populate_by_name=True)

  def to_payload(self) -> dict[str, Any]:
    """Serialize to the camelCase JSON shape used on the wire and in storage."""
    return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class _PlanSection(BaseModel):
  """Plan sections keep their snake_case wire names (total_kcal, protein_g, RIR)."""

  model_config = ConfigDict(extra="allow")


class UserProfile(_CamelModel):
  """Onboarding profile for a user."""

  id: str
  name: str = ""
  goal: Goal = "GENERAL_FITNESS"
  equipment: list[str] = Field(default_factory=list)
  dietary_prefs: list[str] = Field(default_factory=list)
  training_days: int = 3
  timezone: str = "UTC"
  onboarding_complete: bool = False
  age: int | None = None
  sex: Literal["Male", "Female"] | None = None
  height: float | None = None
  weight: float | None = None
  activity_level: str | None = None
  daily_calorie_target: int | None = None


class CheckinData(_CamelModel):
  """One daily check-in."""

  id: str
  mode: CheckinMode = "LOW"
  date: str
  energy: int | None = None
  stress: int | None = None
  motivation: int | None = None
  sleep_hrs: float | None = None
  soreness: list[str] = Field(default_factory=list)


class WorkoutBlock(_PlanSection):
  name: str
  items: list[dict[str, Any]] = Field(default_factory=list)


class WorkoutPlan(_PlanSection):
  focus: list[str] = Field(default_factory=list)
  blocks: list[WorkoutBlock] = Field(default_factory=list)
  intensity: str | None = None
  notes: str | None = None


class Meal(_PlanSection):
  name: str
  items: list[dict[str, Any]] = Field(default_factory=list)


class NutritionPlan(_PlanSection):
  total_kcal: int
  protein_g: int
  meals_per_day: int | None = None
  meals: list[Meal] = Field(default_factory=list)
  hydration_l: float = 2.5


class RecoveryPlan(_PlanSection):
  mobility: list[str] = Field(default_factory=list)
  sleep: list[str] = Field(default_factory=list)


class DayPlan(_PlanSection):
  """One weekday of a weekly base plan."""

  workout: WorkoutPlan
  nutrition: NutritionPlan
  recovery: RecoveryPlan
  reason: str | None = None


class DailyPlan(_CamelModel):
  """A day-specific plan adapted from the base plan and today's check-in."""

  id: str
  date: str
  workout: WorkoutPlan
  nutrition: NutritionPlan
  recovery: RecoveryPlan
  motivation: str = ""
  adherence: float | None = None
  adjustments: list[str] = Field(default_factory=list)
  is_from_base_plan: bool | None = None
  is_ai_adjusted: bool | None = None


class WeeklyBasePlan(_CamelModel):
  """A generated weekly structure keyed by lowercase weekday name."""

  id: str
  created_at: str
  days: dict[str, DayPlan] = Field(default_factory=dict)
  is_locked: bool | None = None
  name: str | None = None
  is_active: bool | None = None
  activated_at: str | None = None
  deactivated_at: str | None = None
