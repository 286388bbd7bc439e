"""Rule-based daily plan used when remote generation fails and fallback is enabled."""

from __future__ import annotations

from datetime import date

from liftor.plans.models import CheckinData, DailyPlan, Meal, NutritionPlan, RecoveryPlan, UserProfile, WorkoutBlock, WorkoutPlan
from liftor.utils.dates import today_iso
from liftor.utils.ids import epoch_ms_id

DEFAULT_CALORIES = 2000
DEFAULT_PROTEIN_G = 150
LOW_ENERGY_THRESHOLD = 5

_LOW_ENERGY_ITEMS = [
  {"exercise": "Gentle yoga flow", "sets": 1, "reps": "15-20 min", "RIR": 0},
  {"exercise": "Walking", "sets": 1, "reps": "10-15 min", "RIR": 0},
]
_EQUIPMENT_ITEMS = [
  {"exercise": "Compound movement", "sets": 3, "reps": "8-12", "RIR": 2},
  {"exercise": "Accessory work", "sets": 3, "reps": "10-15", "RIR": 2},
]
_BODYWEIGHT_ITEMS = [
  {"exercise": "Bodyweight Squats", "sets": 3, "reps": "10-15", "RIR": 2},
  {"exercise": "Push-ups", "sets": 3, "reps": "8-12", "RIR": 2},
  {"exercise": "Plank", "sets": 3, "reps": "30-60s", "RIR": 1},
]
_MEALS = [
  ("Breakfast", [("High-protein breakfast", "1 serving"), ("Complex carbs", "1 serving")]),
  ("Lunch", [("Lean protein", "150g"), ("Whole grains", "1 cup"), ("Vegetables", "2 cups")]),
  ("Post-Workout", [("Protein shake", "1 scoop"), ("Banana", "1 medium")]),
  ("Dinner", [("Quality protein", "150g"), ("Complex carbs", "1 cup"), ("Salad", "2 cups")]),
]


def _has_equipment(user: UserProfile | None) -> bool:
  if user is None:
    return False
  return any(item != "Bodyweight" for item in user.equipment)


def _protein_target(user: UserProfile | None) -> int:
  if user is None or not user.weight:
    return DEFAULT_PROTEIN_G
  return round(user.weight * 2.2 * 0.9)


def create_emergency_fallback_plan(checkin: CheckinData, user: UserProfile | None, *, plan_id: str | None = None, today: date | None = None) -> DailyPlan:
  """Build a complete daily plan from check-in signals alone.

  The output depends only on the inputs, except for ``id`` and ``date`` which
  default to the current epoch-ms and UTC day.
  """
  is_low_energy = (checkin.energy or LOW_ENERGY_THRESHOLD) < LOW_ENERGY_THRESHOLD
  stress = checkin.stress or 3

  if is_low_energy:
    main_items = _LOW_ENERGY_ITEMS
  elif _has_equipment(user):
    main_items = _EQUIPMENT_ITEMS
  else:
    main_items = _BODYWEIGHT_ITEMS

  workout = WorkoutPlan(
    focus=["Recovery", "Mobility"] if is_low_energy else ["Full Body"],
    blocks=[
      WorkoutBlock(name="Warm-up", items=[{"exercise": "Dynamic stretching", "sets": 1, "reps": "5-8 min", "RIR": 0}]),
      WorkoutBlock(name="Light Movement" if is_low_energy else "Main Workout", items=[dict(item) for item in main_items]),
    ],
    notes=f"Adaptive plan based on {checkin.energy}/10 energy level.",
  )

  nutrition = NutritionPlan(
    total_kcal=(user.daily_calorie_target if user else None) or DEFAULT_CALORIES,
    protein_g=_protein_target(user),
    meals=[Meal(name=name, items=[{"food": food, "qty": qty} for food, qty in items]) for name, items in _MEALS],
    hydration_l=2.5,
  )

  if is_low_energy:
    mobility = ["Gentle stretching (10 min)", "Deep breathing exercises (5 min)"]
  else:
    mobility = ["Post-workout stretching (10 min)", "Foam rolling if available (5-10 min)"]

  recovery = RecoveryPlan(
    mobility=mobility,
    sleep=[
      f"Target: {max(7, 9 - stress)} hours tonight",
      "Create a calming bedtime routine",
      "Consider meditation before bed" if checkin.stress and checkin.stress > 6 else "Avoid screens 1 hour before bed",
    ],
  )

  if is_low_energy:
    motivation = "Rest is part of progress. Listen to your body and be gentle with yourself today. 🌱"
  else:
    motivation = "Every rep counts toward your fitness journey. Stay consistent! 💪"

  return DailyPlan(
    id=plan_id or epoch_ms_id(),
    date=today_iso(today),
    workout=workout,
    nutrition=nutrition,
    recovery=recovery,
    motivation=motivation,
    adherence=0,
    adjustments=[],
    is_from_base_plan=True,
  )
