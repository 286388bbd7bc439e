"""Deterministic daily baseline derived from the weekly base plan.

The remote daily generator receives this baseline and titrates it; the rules
here only apply check-in driven adjustments that never need a model.
"""

from __future__ import annotations

import copy
from datetime import date

from liftor.ai.errors import BasePlanGenerationError
from liftor.plans.models import CheckinData, DailyPlan, UserProfile, WeeklyBasePlan, WorkoutBlock, WorkoutPlan
from liftor.utils.dates import today_iso, weekday_key
from liftor.utils.ids import epoch_ms_id

_ACTIVITY_MULTIPLIERS = {
  "Sedentary": 1.2,
  "Lightly Active": 1.375,
  "Moderately Active": 1.55,
  "Very Active": 1.725,
  "Extra Active": 1.9,
}

_STRESS_RELIEF_BLOCK = WorkoutBlock(
  name="Stress Relief",
  items=[
    {"exercise": "Deep breathing", "sets": 1, "reps": "5 min", "RIR": 0},
    {"exercise": "Gentle yoga", "sets": 1, "reps": "15 min", "RIR": 0},
    {"exercise": "Walking", "sets": 1, "reps": "20 min", "RIR": 0},
  ],
)


def _bmr(user: UserProfile) -> int:
  """Mifflin-St Jeor basal metabolic rate, 2000 when body stats are incomplete."""
  if not user.weight or not user.height or not user.age or not user.sex:
    return 2000

  base = 10 * user.weight + 6.25 * user.height - 5 * user.age
  return round(base + 5) if user.sex == "Male" else round(base - 161)


def _tdee(user: UserProfile) -> int:
  multiplier = _ACTIVITY_MULTIPLIERS.get(user.activity_level or "Moderately Active", 1.55)
  return round(_bmr(user) * multiplier)


def get_calorie_target(user: UserProfile) -> int:
  """Return the user's daily calorie target, derived from TDEE and goal when unset."""
  if user.daily_calorie_target:
    return user.daily_calorie_target

  tdee = _tdee(user)
  if user.goal == "WEIGHT_LOSS":
    return round(tdee * 0.85)
  if user.goal == "MUSCLE_GAIN":
    return round(tdee * 1.1)
  return tdee


def get_protein_target(user: UserProfile) -> int:
  """Return grams of protein per day from body weight, or 30% of calories without it."""
  if not user.weight:
    return round(get_calorie_target(user) * 0.3 / 4)

  multiplier = 2.2 if user.goal == "MUSCLE_GAIN" else 1.8
  return round(user.weight * multiplier)


def _raise_rir(items: list[dict], floor: int) -> None:
  for item in items:
    if item.get("RIR") is not None:
      item["RIR"] = max(item["RIR"], floor)


def _adjust_workout(workout: WorkoutPlan, energy: int, stress: int, soreness: list[str]) -> tuple[WorkoutPlan, list[str]]:
  adjustments: list[str] = []
  main_block = workout.blocks[1] if len(workout.blocks) > 1 else None

  if energy < 4:
    if main_block is not None and main_block.items:
      main_block.items = main_block.items[:2]
      _raise_rir(main_block.items, 3)
      adjustments.append("Reduced volume and intensity for low energy")
  elif energy < 6:
    if main_block is not None and main_block.items:
      _raise_rir(main_block.items, 2)
      adjustments.append("Reduced intensity for moderate energy")

  if stress > 7:
    workout.focus = ["Recovery", "Stress Relief"]
    workout.blocks = [_STRESS_RELIEF_BLOCK.model_copy(deep=True)]
    adjustments.append("Switched to stress-relief protocol")

  if soreness:
    areas = ", ".join(soreness)
    adjustments.append(f"Modified for {areas} soreness")
    workout.notes = f"⚠️ Soreness in {areas} - modify or skip affected exercises"

  return workout, adjustments


def _motivation_message(user: UserProfile, motivation: int) -> str:
  if motivation >= 8:
    return "🚀 High motivation detected! Channel this energy into quality reps and perfect form!"
  if motivation >= 5:
    goal = user.goal.replace("_", " ", 1).lower()
    return f"💪 Steady progress towards your {goal} goals. Stay consistent!"
  return "🌱 Every small step counts. Focus on showing up - that's the hardest part. You've got this!"


def build_daily_baseline(user: UserProfile, checkin: CheckinData, base_plan: WeeklyBasePlan, today: date, *, plan_id: str | None = None) -> DailyPlan:
  """Adapt today's base-plan day to the check-in without calling a model."""
  day_key = weekday_key(today)
  day_plan = base_plan.days.get(day_key)
  if day_plan is None:
    raise BasePlanGenerationError(f"No base plan found for {day_key}", "validation")

  energy = checkin.energy or 5
  stress = checkin.stress or 5
  motivation = checkin.motivation or 5

  workout, adjustments = _adjust_workout(copy.deepcopy(day_plan.workout), energy, stress, checkin.soreness)

  nutrition = day_plan.nutrition.model_copy(deep=True, update={"total_kcal": get_calorie_target(user), "protein_g": get_protein_target(user)})

  recovery_update: dict[str, list[str]] = {}
  if energy < 5:
    recovery_update["mobility"] = ["Gentle stretching", "Breathing exercises", "Light movement"]
  if stress > 6:
    recovery_update["sleep"] = ["Prioritize 8+ hours tonight", "Consider meditation", "Avoid screens 2hrs before bed"]
  recovery = day_plan.recovery.model_copy(deep=True, update=recovery_update)

  return DailyPlan(
    id=plan_id or epoch_ms_id(),
    date=today_iso(today),
    workout=workout,
    nutrition=nutrition,
    recovery=recovery,
    motivation=_motivation_message(user, motivation),
    adherence=0,
    adjustments=adjustments,
    is_from_base_plan=True,
  )
