"""Postgres-backed plan store using SQLAlchemy."""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from liftor.core.database import get_session_factory
from liftor.plans.models import CheckinData, DailyPlan, UserProfile, WeeklyBasePlan
from liftor.schema.sql import CheckinRow, DailyPlanRow, UserProfileRow, WeeklyBasePlanRow
from liftor.storage.plan_store import PlanStore, normalize_new_base_plan, recent_cutoff, select_current_base_plan
from liftor.utils.dates import today_iso, utc_now_iso

logger = logging.getLogger(__name__)


class PostgresPlanStore(PlanStore):
  """Persist profiles, check-ins and plans as JSON payload rows."""

  def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    self._session_factory = session_factory or get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def get_user(self, user_id: str) -> UserProfile | None:
    async with self._session_factory() as session:
      row = await session.get(UserProfileRow, user_id)
      if row is None:
        return None
      return UserProfile.model_validate(row.payload)

  async def save_user(self, user: UserProfile) -> None:
    async with self._session_factory() as session:
      row = await session.get(UserProfileRow, user.id)
      if row is None:
        session.add(UserProfileRow(id=user.id, payload=user.to_payload()))
      else:
        row.payload = user.to_payload()
      await session.commit()

  async def add_checkin(self, user_id: str, checkin: CheckinData) -> None:
    async with self._session_factory() as session:
      row = await session.get(CheckinRow, (user_id, checkin.id))
      if row is None:
        session.add(CheckinRow(user_id=user_id, checkin_id=checkin.id, date=checkin.date[:10], payload=checkin.to_payload()))
      else:
        row.date = checkin.date[:10]
        row.payload = checkin.to_payload()
      await session.commit()

  async def get_today_checkin(self, user_id: str, today: date | None = None) -> CheckinData | None:
    async with self._session_factory() as session:
      stmt = select(CheckinRow).where(CheckinRow.user_id == user_id, CheckinRow.date == today_iso(today)).order_by(CheckinRow.created_at.desc())
      row = (await session.execute(stmt)).scalars().first()
      if row is None:
        return None
      return CheckinData.model_validate(row.payload)

  async def get_recent_checkins(self, user_id: str, days: int = 15, today: date | None = None) -> list[CheckinData]:
    async with self._session_factory() as session:
      stmt = select(CheckinRow).where(CheckinRow.user_id == user_id, CheckinRow.date >= recent_cutoff(days, today)).order_by(CheckinRow.date.desc())
      rows = (await session.execute(stmt)).scalars().all()
      return [CheckinData.model_validate(row.payload) for row in rows]

  async def add_plan(self, user_id: str, plan: DailyPlan) -> DailyPlan:
    async with self._session_factory() as session:
      row = await session.get(DailyPlanRow, (user_id, plan.date))
      if row is None:
        session.add(DailyPlanRow(user_id=user_id, date=plan.date, plan_id=plan.id, payload=plan.to_payload()))
      else:
        row.plan_id = plan.id
        row.payload = plan.to_payload()
      await session.commit()
    logger.info("Saved daily plan user_id=%s date=%s", user_id, plan.date)
    return plan

  async def get_today_plan(self, user_id: str, today: date | None = None) -> DailyPlan | None:
    async with self._session_factory() as session:
      row = await session.get(DailyPlanRow, (user_id, today_iso(today)))
      if row is None:
        return None
      return DailyPlan.model_validate(row.payload)

  async def add_base_plan(self, user_id: str, plan: WeeklyBasePlan) -> WeeklyBasePlan:
    now_iso = utc_now_iso()
    stored = normalize_new_base_plan(plan, now_iso=now_iso)
    async with self._session_factory() as session:
      active_rows = (await session.execute(select(WeeklyBasePlanRow).where(WeeklyBasePlanRow.user_id == user_id, WeeklyBasePlanRow.is_active.is_(True), WeeklyBasePlanRow.plan_id != stored.id))).scalars().all()
      for row in active_rows:
        deactivated = WeeklyBasePlan.model_validate(row.payload).model_copy(update={"is_active": False, "deactivated_at": now_iso})
        row.is_active = False
        row.payload = deactivated.to_payload()

      existing = await session.get(WeeklyBasePlanRow, (user_id, stored.id))
      if existing is None:
        session.add(
          WeeklyBasePlanRow(user_id=user_id, plan_id=stored.id, name=stored.name, is_active=True, is_locked=bool(stored.is_locked), created_at=stored.created_at, payload=stored.to_payload())
        )
      else:
        existing.name = stored.name
        existing.is_active = True
        existing.is_locked = bool(stored.is_locked)
        existing.created_at = stored.created_at
        existing.payload = stored.to_payload()
      await session.commit()

    logger.info("Saved base plan user_id=%s plan_id=%s days=%d", user_id, stored.id, len(stored.days))
    return stored

  async def get_current_base_plan(self, user_id: str) -> WeeklyBasePlan | None:
    async with self._session_factory() as session:
      rows = (await session.execute(select(WeeklyBasePlanRow).where(WeeklyBasePlanRow.user_id == user_id).order_by(WeeklyBasePlanRow.created_at.asc()))).scalars().all()
      plans = [WeeklyBasePlan.model_validate(row.payload) for row in rows]
    return select_current_base_plan(plans)
