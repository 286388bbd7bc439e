"""Postgres-backed repository for plan generation attempt records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from liftor.core.database import get_session_factory
from liftor.schema.sql import PlanGenerationAttempt


@dataclass(frozen=True)
class AttemptRecord:
  """One generation attempt as written to plan_generation_attempts."""

  kind: str
  success: bool
  error_type: str | None
  error_category: str | None
  error_message: str | None
  metadata: dict[str, Any]


class PostgresDiagnosticsRepository:
  """Insert generation attempt rows."""

  def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    self._session_factory = session_factory or get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def insert_attempt(self, record: AttemptRecord) -> int:
    async with self._session_factory() as session:
      row = PlanGenerationAttempt(
        kind=record.kind, success=record.success, error_type=record.error_type, error_category=record.error_category, error_message=record.error_message, metadata_json=record.metadata
      )
      session.add(row)
      await session.commit()
      return row.id
