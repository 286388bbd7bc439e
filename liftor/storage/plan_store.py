"""Storage interface for profiles, check-ins and plans, plus the in-memory store."""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, date, datetime, timedelta
from typing import Protocol

from liftor.plans.models import CheckinData, DailyPlan, UserProfile, WeeklyBasePlan
from liftor.utils.dates import parse_iso, today_iso, utc_now, utc_now_iso

logger = logging.getLogger(__name__)


class PlanStore(Protocol):
  """Repository contract for plan persistence."""

  async def get_user(self, user_id: str) -> UserProfile | None:
    """Fetch a profile by identifier."""

  async def save_user(self, user: UserProfile) -> None:
    """Insert or replace a profile."""

  async def add_checkin(self, user_id: str, checkin: CheckinData) -> None:
    """Persist a check-in, replacing one with the same id."""

  async def get_today_checkin(self, user_id: str, today: date | None = None) -> CheckinData | None:
    """Return the most recent check-in dated today."""

  async def get_recent_checkins(self, user_id: str, days: int = 15, today: date | None = None) -> list[CheckinData]:
    """Return check-ins from the last ``days`` days, newest first."""

  async def add_plan(self, user_id: str, plan: DailyPlan) -> DailyPlan:
    """Upsert a daily plan by date."""

  async def get_today_plan(self, user_id: str, today: date | None = None) -> DailyPlan | None:
    """Return today's daily plan."""

  async def add_base_plan(self, user_id: str, plan: WeeklyBasePlan) -> WeeklyBasePlan:
    """Store a new base plan as the active one and return the stored version."""

  async def get_current_base_plan(self, user_id: str) -> WeeklyBasePlan | None:
    """Return the base plan daily plans should adapt from."""


def default_base_plan_name(created_at: str | None) -> str:
  """Return the default "Plan - Mon D, YYYY" label for a base plan."""
  created = parse_iso(created_at) or utc_now()
  return f"Plan - {created:%b} {created.day}, {created.year}"


def normalize_new_base_plan(plan: WeeklyBasePlan, *, now_iso: str | None = None) -> WeeklyBasePlan:
  """Fill management fields for a freshly generated base plan and mark it active."""
  now_iso = now_iso or utc_now_iso()
  created_at = plan.created_at or now_iso
  return plan.model_copy(
    update={
      "created_at": created_at,
      "is_locked": plan.is_locked if plan.is_locked is not None else False,
      "name": plan.name or default_base_plan_name(created_at),
      "is_active": True,
      "activated_at": now_iso,
      "deactivated_at": None,
    }
  )


def select_current_base_plan(plans: list[WeeklyBasePlan]) -> WeeklyBasePlan | None:
  """Pick the active plan, else the latest unlocked plan, else the latest plan.

  ``plans`` must be ordered oldest first.
  """
  if not plans:
    return None

  for plan in plans:
    if plan.is_active:
      return plan

  logger.warning("No active base plan found; falling back to most recent plan")
  for plan in reversed(plans):
    if not plan.is_locked:
      return plan

  return plans[-1]


def recent_cutoff(days: int, today: date | None = None) -> str:
  """Return the earliest YYYY-MM-DD that still counts as recent."""
  anchor = today or utc_now().date()
  return (anchor - timedelta(days=days)).isoformat()


def _sort_key(created_at: str) -> datetime:
  return parse_iso(created_at) or datetime.min.replace(tzinfo=UTC)


class InMemoryPlanStore:
  """Process-local store used by tests and when no database is configured."""

  def __init__(self) -> None:
    self._users: dict[str, UserProfile] = {}
    self._checkins: dict[str, list[CheckinData]] = {}
    self._plans: dict[str, list[DailyPlan]] = {}
    self._base_plans: dict[str, list[WeeklyBasePlan]] = {}
    self._lock = asyncio.Lock()

  async def get_user(self, user_id: str) -> UserProfile | None:
    return self._users.get(user_id)

  async def save_user(self, user: UserProfile) -> None:
    self._users[user.id] = user

  async def add_checkin(self, user_id: str, checkin: CheckinData) -> None:
    async with self._lock:
      entries = [entry for entry in self._checkins.get(user_id, []) if entry.id != checkin.id]
      entries.append(checkin)
      self._checkins[user_id] = entries

  async def get_today_checkin(self, user_id: str, today: date | None = None) -> CheckinData | None:
    day = today_iso(today)
    matches = [entry for entry in self._checkins.get(user_id, []) if entry.date[:10] == day]
    return matches[-1] if matches else None

  async def get_recent_checkins(self, user_id: str, days: int = 15, today: date | None = None) -> list[CheckinData]:
    cutoff = recent_cutoff(days, today)
    recent = [entry for entry in self._checkins.get(user_id, []) if entry.date[:10] >= cutoff]
    return sorted(recent, key=lambda entry: entry.date, reverse=True)

  async def add_plan(self, user_id: str, plan: DailyPlan) -> DailyPlan:
    async with self._lock:
      plans = [existing for existing in self._plans.get(user_id, []) if existing.date != plan.date]
      plans.append(plan)
      self._plans[user_id] = plans
    logger.info("Saved daily plan user_id=%s date=%s", user_id, plan.date)
    return plan

  async def get_today_plan(self, user_id: str, today: date | None = None) -> DailyPlan | None:
    day = today_iso(today)
    for plan in self._plans.get(user_id, []):
      if plan.date == day:
        return plan
    return None

  async def add_base_plan(self, user_id: str, plan: WeeklyBasePlan) -> WeeklyBasePlan:
    now_iso = utc_now_iso()
    stored = normalize_new_base_plan(plan, now_iso=now_iso)
    async with self._lock:
      previous = [
        existing.model_copy(update={"is_active": False, "deactivated_at": now_iso}) if existing.is_active else existing
        for existing in self._base_plans.get(user_id, [])
        if existing.id != stored.id
      ]
      previous.append(stored)
      self._base_plans[user_id] = sorted(previous, key=lambda existing: _sort_key(existing.created_at))
    logger.info("Saved base plan user_id=%s plan_id=%s days=%d", user_id, stored.id, len(stored.days))
    return stored

  async def get_current_base_plan(self, user_id: str) -> WeeklyBasePlan | None:
    return select_current_base_plan(self._base_plans.get(user_id, []))
