"""Create plan engine tables.

Revision ID: 5c1e9a7f3b20
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "5c1e9a7f3b20"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
  """Upgrade schema."""
  op.create_table(
    "user_profiles",
    sa.Column("id", sa.String(), nullable=False),
    sa.Column("payload", sa.JSON(), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
    sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_table(
    "checkins",
    sa.Column("user_id", sa.String(), nullable=False),
    sa.Column("checkin_id", sa.String(), nullable=False),
    sa.Column("date", sa.String(length=10), nullable=False),
    sa.Column("payload", sa.JSON(), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
    sa.PrimaryKeyConstraint("user_id", "checkin_id"),
  )
  op.create_index(op.f("ix_checkins_date"), "checkins", ["date"], unique=False)
  op.create_table(
    "weekly_base_plans",
    sa.Column("user_id", sa.String(), nullable=False),
    sa.Column("plan_id", sa.String(), nullable=False),
    sa.Column("name", sa.String(), nullable=True),
    sa.Column("is_active", sa.Boolean(), nullable=False),
    sa.Column("is_locked", sa.Boolean(), nullable=False),
    sa.Column("created_at", sa.String(length=40), nullable=False),
    sa.Column("payload", sa.JSON(), nullable=False),
    sa.PrimaryKeyConstraint("user_id", "plan_id"),
  )
  op.create_index(op.f("ix_weekly_base_plans_is_active"), "weekly_base_plans", ["is_active"], unique=False)
  op.create_table(
    "daily_plans",
    sa.Column("user_id", sa.String(), nullable=False),
    sa.Column("date", sa.String(length=10), nullable=False),
    sa.Column("plan_id", sa.String(), nullable=False),
    sa.Column("payload", sa.JSON(), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
    sa.PrimaryKeyConstraint("user_id", "date"),
  )
  op.create_table(
    "plan_job_states",
    sa.Column("user_id", sa.String(), nullable=False),
    sa.Column("status", sa.String(length=16), nullable=False),
    sa.Column("job_id", sa.String(), nullable=True),
    sa.Column("started_at", sa.String(length=40), nullable=True),
    sa.Column("completed_at", sa.String(length=40), nullable=True),
    sa.Column("error", sa.Text(), nullable=True),
    sa.Column("verified", sa.Boolean(), nullable=False),
    sa.Column("plan_id", sa.String(), nullable=True),
    sa.PrimaryKeyConstraint("user_id"),
  )
  op.create_table(
    "plan_generation_attempts",
    sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
    sa.Column("kind", sa.String(length=16), nullable=False),
    sa.Column("success", sa.Boolean(), nullable=False),
    sa.Column("error_type", sa.String(), nullable=True),
    sa.Column("error_category", sa.String(length=16), nullable=True),
    sa.Column("error_message", sa.Text(), nullable=True),
    sa.Column("metadata_json", sa.JSON(), nullable=True),
    sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
    sa.PrimaryKeyConstraint("id"),
  )
  op.create_index(op.f("ix_plan_generation_attempts_kind"), "plan_generation_attempts", ["kind"], unique=False)


def downgrade() -> None:
  """Downgrade schema."""
  op.drop_index(op.f("ix_plan_generation_attempts_kind"), table_name="plan_generation_attempts")
  op.drop_table("plan_generation_attempts")
  op.drop_table("plan_job_states")
  op.drop_table("daily_plans")
  op.drop_index(op.f("ix_weekly_base_plans_is_active"), table_name="weekly_base_plans")
  op.drop_table("weekly_base_plans")
  op.drop_index(op.f("ix_checkins_date"), table_name="checkins")
  op.drop_table("checkins")
  op.drop_table("user_profiles")
