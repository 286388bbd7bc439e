from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from liftor.ai.errors import BasePlanGenerationError
from liftor.generation.models import GenerationOutcome
from liftor.generation.orchestrator import FAILURE_TITLE, GenerationSession
from liftor.generation.policy import BASE_PLAN_POLICY
from liftor.generation.registry import GenerationRegistry


@pytest.fixture
def service():
  return AsyncMock()


@pytest.fixture
def make_session(service, navigator, presenter, clock):
  registry = GenerationRegistry()

  def _make(store, **overrides):
    policy = BASE_PLAN_POLICY.with_overrides(**overrides)
    return GenerationSession("user-1", policy, store=store, service=service, registry=registry, navigator=navigator, presenter=presenter, diagnostics=AsyncMock(), clock=clock, sleep=AsyncMock())

  return _make


@pytest.mark.anyio
async def test_recent_base_plan_skips_generation(seeded_store, make_session, service, navigator):
  session = make_session(seeded_store)

  outcome = await session.generate_plan()

  assert outcome == GenerationOutcome.SKIPPED_EXISTING
  service.generate_base_plan.assert_not_awaited()
  assert navigator.calls == [("push", "/plan-preview"), ("replace", "/plan-preview")]


@pytest.mark.anyio
async def test_base_plan_older_than_cycle_is_regenerated(store, user, make_session, service, navigator, base_plan_factory):
  await store.save_user(user)
  await store.add_base_plan(user.id, base_plan_factory("base-old", created_at="2026-01-01T08:00:00Z"))
  service.generate_base_plan.return_value = base_plan_factory("base-new", created_at="2026-03-02T09:00:00Z")
  session = make_session(store)

  outcome = await session.generate_plan()

  assert outcome == GenerationOutcome.READY
  current = await store.get_current_base_plan(user.id)
  assert current.id == "base-new"
  assert current.is_active is True
  assert navigator.calls == [("push", "/plan-preview"), ("replace", "/plan-preview")]


@pytest.mark.anyio
async def test_force_regen_bypasses_existing_plan(seeded_store, make_session, service, base_plan_factory):
  service.generate_base_plan.return_value = base_plan_factory("base-2", created_at="2026-03-02T09:00:00Z")
  session = make_session(seeded_store)

  outcome = await session.generate_plan(force_regen=True)

  assert outcome == GenerationOutcome.READY
  service.generate_base_plan.assert_awaited_once()


@pytest.mark.anyio
async def test_base_failure_never_uses_fallback(store, user, make_session, service, presenter):
  await store.save_user(user)
  service.generate_base_plan.side_effect = BasePlanGenerationError("AI service network error: ConnectError", "generation")
  session = make_session(store, allow_fallback=True)

  outcome = await session.generate_plan()

  assert outcome == GenerationOutcome.FAILED
  assert presenter.titles() == [FAILURE_TITLE]
  assert await store.get_current_base_plan(user.id) is None


@pytest.mark.anyio
async def test_base_retry_waits_three_minutes(store, user, make_session, presenter, clock):
  await store.save_user(user)
  session = make_session(store)
  now_ms = int(clock().timestamp() * 1000)
  session.job.last_retry_time_ms = now_ms - 60_000

  assert await session.handle_retry(now_ms) is None
  assert presenter.alerts[0].message == "Please wait 2 minute(s) and 0 second(s) before trying again."


@pytest.mark.anyio
async def test_base_generation_requires_profile(store, make_session, service, presenter):
  session = make_session(store)

  outcome = await session.generate_plan()

  assert outcome == GenerationOutcome.BLOCKED
  service.generate_base_plan.assert_not_awaited()
  assert presenter.alerts[0].message == "Please complete your profile first."
