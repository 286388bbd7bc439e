"""Shared fixtures: recording UI doubles, a fixed clock and seeded in-memory stores."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from liftor.plans.models import CheckinData, DailyPlan, UserProfile, WeeklyBasePlan
from liftor.storage.plan_store import InMemoryPlanStore
from liftor.utils.dates import WEEKDAY_KEYS

# Monday, so the base-plan day key is "monday".
FIXED_NOW = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)
TODAY = FIXED_NOW.date().isoformat()


class FixedClock:
  """Callable clock that only moves when a test advances it."""

  def __init__(self, now: datetime = FIXED_NOW) -> None:
    self.now = now

  def __call__(self) -> datetime:
    return self.now

  def advance(self, seconds: float) -> None:
    self.now = self.now + timedelta(seconds=seconds)


class RecordingNavigator:
  """Navigator double that records calls and can be told to reject routes."""

  def __init__(self, failing_routes: set[str] | None = None) -> None:
    self.calls: list[tuple[str, str]] = []
    self.failing_routes = failing_routes or set()

  def _record(self, method: str, route: str) -> None:
    self.calls.append((method, route))
    if route in self.failing_routes:
      raise RuntimeError(f"cannot navigate to {route}")

  def push(self, route: str) -> None:
    self._record("push", route)

  def replace(self, route: str) -> None:
    self._record("replace", route)


class RecordingPresenter:
  def __init__(self) -> None:
    self.alerts = []

  def present(self, alert) -> None:
    self.alerts.append(alert)

  def titles(self) -> list[str]:
    return [alert.title for alert in self.alerts]


def make_day(focus: str = "Upper Body") -> dict:
  return {
    "workout": {
      "focus": [focus],
      "blocks": [
        {"name": "Warm-up", "items": [{"exercise": "Arm circles", "sets": 1, "reps": "2 min", "RIR": 0}]},
        {
          "name": "Main",
          "items": [
            {"exercise": "Bench Press", "sets": 4, "reps": "6-8", "RIR": 1},
            {"exercise": "Barbell Row", "sets": 4, "reps": "8-10", "RIR": 1},
            {"exercise": "Curl", "sets": 3, "reps": "10-12", "RIR": 1},
          ],
        },
      ],
      "intensity": "moderate",
    },
    "nutrition": {"total_kcal": 2400, "protein_g": 160, "meals_per_day": 4, "meals": [], "hydration_l": 3.0},
    "recovery": {"mobility": ["Hip openers"], "sleep": ["8 hours"]},
    "reason": "Balanced split",
  }


def make_base_plan(plan_id: str = "base-1", created_at: str = "2026-02-25T08:00:00Z") -> WeeklyBasePlan:
  return WeeklyBasePlan.model_validate({"id": plan_id, "createdAt": created_at, "days": {key: make_day() for key in WEEKDAY_KEYS}})


def make_daily_plan(plan_id: str = "daily-1", date: str = TODAY) -> DailyPlan:
  day = make_day()
  return DailyPlan.model_validate({"id": plan_id, "date": date, "workout": day["workout"], "nutrition": day["nutrition"], "recovery": day["recovery"], "motivation": "Go", "isAiAdjusted": True})


@pytest.fixture
def anyio_backend() -> str:
  return "asyncio"


@pytest.fixture
def clock() -> FixedClock:
  return FixedClock()


@pytest.fixture
def navigator() -> RecordingNavigator:
  return RecordingNavigator()


@pytest.fixture
def presenter() -> RecordingPresenter:
  return RecordingPresenter()


@pytest.fixture
def user() -> UserProfile:
  return UserProfile(id="user-1", name="Sam", goal="MUSCLE_GAIN", equipment=["Dumbbells"], training_days=4, age=30, sex="Male", height=180, weight=80, activity_level="Moderately Active")


@pytest.fixture
def checkin() -> CheckinData:
  return CheckinData(id="checkin-1", mode="PRO", date=TODAY, energy=7, stress=4, motivation=8, sleep_hrs=7.5)


@pytest.fixture
def base_plan() -> WeeklyBasePlan:
  return make_base_plan()


@pytest.fixture
def store() -> InMemoryPlanStore:
  return InMemoryPlanStore()


@pytest.fixture
async def seeded_store(store: InMemoryPlanStore, user: UserProfile, checkin: CheckinData, base_plan: WeeklyBasePlan) -> InMemoryPlanStore:
  await store.save_user(user)
  await store.add_checkin(user.id, checkin)
  await store.add_base_plan(user.id, base_plan)
  return store


@pytest.fixture
def base_plan_factory():
  return make_base_plan


@pytest.fixture
def daily_plan_factory():
  return make_daily_plan
