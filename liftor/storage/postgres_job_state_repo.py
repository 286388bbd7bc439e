"""Postgres-backed repository for background job state using SQLAlchemy."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from liftor.core.database import get_session_factory
from liftor.generation.models import BasePlanJobState
from liftor.schema.sql import PlanJobStateRow
from liftor.storage.job_state_repo import JobStateRepository


class PostgresJobStateRepository(JobStateRepository):
  """Persist one plan_job_states row per user."""

  def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    self._session_factory = session_factory or get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def get_state(self, user_id: str) -> BasePlanJobState | None:
    async with self._session_factory() as session:
      row = await session.get(PlanJobStateRow, user_id)
      if row is None:
        return None
      return self._row_to_state(row)

  async def save_state(self, state: BasePlanJobState) -> None:
    async with self._session_factory() as session:
      row = await session.get(PlanJobStateRow, state.user_id)
      if row is None:
        row = PlanJobStateRow(user_id=state.user_id)
        session.add(row)
      row.status = state.status
      row.job_id = state.job_id
      row.started_at = state.started_at
      row.completed_at = state.completed_at
      row.error = state.error
      row.verified = state.verified
      row.plan_id = state.plan_id
      await session.commit()

  async def list_pending(self) -> list[BasePlanJobState]:
    async with self._session_factory() as session:
      result = await session.execute(select(PlanJobStateRow).where(PlanJobStateRow.status == "pending"))
      return [self._row_to_state(row) for row in result.scalars().all()]

  @staticmethod
  def _row_to_state(row: PlanJobStateRow) -> BasePlanJobState:
    return BasePlanJobState(
      user_id=row.user_id, status=row.status, job_id=row.job_id, started_at=row.started_at, completed_at=row.completed_at, error=row.error, verified=bool(row.verified), plan_id=row.plan_id
    )
