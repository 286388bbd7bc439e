from __future__ import annotations

import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from liftor.core.database import Base


class UserProfileRow(Base):
  __tablename__ = "user_profiles"

  id: Mapped[str] = mapped_column(String, primary_key=True)
  payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
  updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class CheckinRow(Base):
  __tablename__ = "checkins"

  user_id: Mapped[str] = mapped_column(String, primary_key=True)
  checkin_id: Mapped[str] = mapped_column(String, primary_key=True)
  date: Mapped[str] = mapped_column(String(10), index=True, nullable=False)
  payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class WeeklyBasePlanRow(Base):
  __tablename__ = "weekly_base_plans"

  user_id: Mapped[str] = mapped_column(String, primary_key=True)
  plan_id: Mapped[str] = mapped_column(String, primary_key=True)
  name: Mapped[str | None] = mapped_column(String, nullable=True)
  is_active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
  is_locked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
  created_at: Mapped[str] = mapped_column(String(40), nullable=False)
  payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)


class DailyPlanRow(Base):
  __tablename__ = "daily_plans"

  user_id: Mapped[str] = mapped_column(String, primary_key=True)
  date: Mapped[str] = mapped_column(String(10), primary_key=True)
  plan_id: Mapped[str] = mapped_column(String, nullable=False)
  payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
  updated_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class PlanJobStateRow(Base):
  __tablename__ = "plan_job_states"

  user_id: Mapped[str] = mapped_column(String, primary_key=True)
  status: Mapped[str] = mapped_column(String(16), nullable=False, default="idle")
  job_id: Mapped[str | None] = mapped_column(String, nullable=True)
  started_at: Mapped[str | None] = mapped_column(String(40), nullable=True)
  completed_at: Mapped[str | None] = mapped_column(String(40), nullable=True)
  error: Mapped[str | None] = mapped_column(Text, nullable=True)
  verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
  plan_id: Mapped[str | None] = mapped_column(String, nullable=True)


class PlanGenerationAttempt(Base):
  __tablename__ = "plan_generation_attempts"

  id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
  kind: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
  success: Mapped[bool] = mapped_column(Boolean, nullable=False)
  error_type: Mapped[str | None] = mapped_column(String, nullable=True)
  error_category: Mapped[str | None] = mapped_column(String(16), nullable=True)
  error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
  metadata_json: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
  created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
