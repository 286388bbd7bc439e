from __future__ import annotations

import asyncio
from unittest.mock import ANY, AsyncMock

import httpx
import pytest

from liftor.ai.errors import BasePlanGenerationError
from liftor.generation.models import GenerationOutcome
from liftor.generation.orchestrator import FAILURE_TITLE, SLOW_PROMPTS, GenerationOrchestrator, GenerationSession
from liftor.generation.policy import DAILY_PLAN_POLICY, HOME_ROUTE
from liftor.generation.registry import GenerationRegistry


@pytest.fixture
def service():
  return AsyncMock()


@pytest.fixture
def diagnostics():
  return AsyncMock()


@pytest.fixture
def sleep():
  return AsyncMock()


@pytest.fixture
def registry():
  return GenerationRegistry()


@pytest.fixture
def make_session(service, registry, navigator, presenter, diagnostics, clock, sleep):
  def _make(store, **overrides):
    policy = DAILY_PLAN_POLICY.with_overrides(**overrides)
    return GenerationSession("user-1", policy, store=store, service=service, registry=registry, navigator=navigator, presenter=presenter, diagnostics=diagnostics, clock=clock, sleep=sleep)

  return _make


def _gated(plan):
  gate = asyncio.Event()

  async def _generate(*args, **kwargs):
    await gate.wait()
    return plan

  return gate, _generate


@pytest.mark.anyio
async def test_existing_plan_skips_remote_call_every_time(seeded_store, make_session, service, navigator, daily_plan_factory):
  await seeded_store.add_plan("user-1", daily_plan_factory("existing"))
  session = make_session(seeded_store)

  first = await session.generate_plan()
  second = await session.generate_plan()

  assert first == GenerationOutcome.SKIPPED_EXISTING
  assert second == GenerationOutcome.SKIPPED_EXISTING
  service.generate_daily_plan.assert_not_awaited()
  assert navigator.calls == [("push", "/plan"), ("replace", "/plan")] * 2


@pytest.mark.anyio
async def test_success_persists_plan_then_navigates_to_celebration(seeded_store, make_session, service, navigator, diagnostics, clock, checkin, daily_plan_factory):
  service.generate_daily_plan.return_value = daily_plan_factory("ai-1")
  session = make_session(seeded_store)

  outcome = await session.generate_plan()

  assert outcome == GenerationOutcome.READY
  stored = await seeded_store.get_today_plan("user-1", today=clock().date())
  assert stored is not None and stored.id == "ai-1"
  assert navigator.calls == [("push", "/plan?celebrate=1"), ("replace", "/plan?celebrate=1")]
  assert session.job.status == "ready"
  recent = service.generate_daily_plan.await_args.args[2]
  assert [entry.id for entry in recent] == [checkin.id]
  diagnostics.assert_awaited_once_with("daily", True, None, ANY)


@pytest.mark.anyio
async def test_concurrent_calls_share_one_remote_call(seeded_store, make_session, service, daily_plan_factory):
  gate, generate = _gated(daily_plan_factory("ai-1"))
  service.generate_daily_plan.side_effect = generate
  session = make_session(seeded_store)
  other_screen = make_session(seeded_store)

  first = asyncio.create_task(session.generate_plan())
  await asyncio.sleep(0)
  second = asyncio.create_task(session.generate_plan())
  third = asyncio.create_task(other_screen.generate_plan())
  await asyncio.sleep(0)
  gate.set()
  outcomes = await asyncio.gather(first, second, third)

  assert outcomes[0] == GenerationOutcome.READY
  assert outcomes[1:] == [GenerationOutcome.JOINED, GenerationOutcome.JOINED]
  assert service.generate_daily_plan.await_count == 1


@pytest.mark.anyio
async def test_retry_inside_interval_is_rejected_with_remaining_seconds(seeded_store, make_session, service, presenter, clock):
  session = make_session(seeded_store)
  now_ms = int(clock().timestamp() * 1000)
  session.job.last_retry_time_ms = now_ms - 10_000

  outcome = await session.handle_retry(now_ms)

  assert outcome is None
  assert presenter.titles() == ["Please Wait"]
  assert presenter.alerts[0].message == "Please wait 20 second(s) before trying again."
  assert session.job.retry_count == 0
  service.generate_daily_plan.assert_not_awaited()


@pytest.mark.anyio
async def test_closed_session_still_persists_without_touching_ui(seeded_store, make_session, service, navigator, presenter, clock, daily_plan_factory):
  gate, generate = _gated(daily_plan_factory("ai-late"))
  service.generate_daily_plan.side_effect = generate
  session = make_session(seeded_store)

  task = asyncio.create_task(session.generate_plan())
  await asyncio.sleep(0)
  session.close()
  gate.set()
  outcome = await task

  assert outcome == GenerationOutcome.READY
  stored = await seeded_store.get_today_plan("user-1", today=clock().date())
  assert stored is not None and stored.id == "ai-late"
  assert navigator.calls == []
  assert presenter.alerts == []


@pytest.mark.anyio
async def test_failure_shows_one_alert_and_try_again_retries_once(seeded_store, make_session, service, presenter, clock, daily_plan_factory):
  service.generate_daily_plan.side_effect = BasePlanGenerationError("AI service returned HTTP 500 for /v1/plans/daily", "generation")
  session = make_session(seeded_store)

  outcome = await session.generate_plan()

  assert outcome == GenerationOutcome.FAILED
  assert service.generate_daily_plan.await_count == 1
  assert len(presenter.alerts) == 1
  alert = presenter.alerts[0]
  assert alert.title == FAILURE_TITLE
  assert [action.label for action in alert.actions] == ["Go Back", "Try Again"]
  assert alert.cancelable is True
  assert session.job.status == "error"
  assert await seeded_store.get_today_plan("user-1", today=clock().date()) is None

  seen: list[tuple[str, int]] = []

  async def _generate(*args, **kwargs):
    seen.append((session.job.status, session.job.retry_count))
    return daily_plan_factory("ai-retry")

  service.generate_daily_plan.side_effect = _generate
  retried = await alert.action("Try Again").invoke()

  assert retried == GenerationOutcome.READY
  assert seen == [("pending", 1)]
  assert session.job.retry_count == 1


@pytest.mark.anyio
async def test_go_back_returns_to_failure_route(seeded_store, make_session, service, presenter, navigator):
  service.generate_daily_plan.side_effect = RuntimeError("boom")
  session = make_session(seeded_store)

  await session.generate_plan()
  await presenter.alerts[0].action("Go Back").invoke()

  assert navigator.calls == [("replace", HOME_ROUTE)]


@pytest.mark.anyio
async def test_second_try_again_inside_interval_is_rejected(seeded_store, make_session, service, presenter):
  service.generate_daily_plan.side_effect = RuntimeError("boom")
  session = make_session(seeded_store)

  await session.generate_plan()
  await presenter.alerts[0].action("Try Again").invoke()
  rejected = await presenter.alerts[1].action("Try Again").invoke()

  assert rejected is None
  assert presenter.titles() == [FAILURE_TITLE, FAILURE_TITLE, "Please Wait"]
  assert presenter.alerts[2].message == "Please wait 30 second(s) before trying again."
  assert service.generate_daily_plan.await_count == 2


@pytest.mark.anyio
async def test_missing_checkin_blocks_and_redirects_home(store, user, base_plan, make_session, service, presenter, navigator):
  await store.save_user(user)
  await store.add_base_plan(user.id, base_plan)
  session = make_session(store)

  outcome = await session.generate_plan()

  assert outcome == GenerationOutcome.BLOCKED
  service.generate_daily_plan.assert_not_awaited()
  alert = presenter.alerts[0]
  assert alert.title == "Data Missing"
  assert alert.message == "Please complete your daily check-in first."
  await alert.action("OK").invoke()
  assert navigator.calls == [("replace", HOME_ROUTE)]


@pytest.mark.anyio
async def test_missing_base_plan_redirects_to_onboarding(store, user, checkin, make_session, presenter, navigator):
  await store.save_user(user)
  await store.add_checkin(user.id, checkin)
  session = make_session(store)

  outcome = await session.generate_plan()

  assert outcome == GenerationOutcome.BLOCKED
  alert = presenter.alerts[0]
  assert alert.title == "Base Plan Missing"
  await alert.action("OK").invoke()
  assert navigator.calls == [("replace", "/onboarding")]


@pytest.mark.anyio
async def test_missing_profile_blocks(store, make_session, presenter):
  session = make_session(store)

  outcome = await session.generate_plan()

  assert outcome == GenerationOutcome.BLOCKED
  assert presenter.alerts[0].message == "Please complete your profile first."


@pytest.mark.anyio
async def test_fallback_mode_saves_rule_based_plan_on_network_error(seeded_store, make_session, service, presenter, navigator, clock):
  service.generate_daily_plan.side_effect = httpx.ConnectError("connection refused")
  session = make_session(seeded_store, allow_fallback=True)

  outcome = await session.generate_plan()

  assert outcome == GenerationOutcome.FALLBACK
  stored = await seeded_store.get_today_plan("user-1", today=clock().date())
  assert stored is not None
  assert stored.is_from_base_plan is True
  assert stored.adherence == 0
  assert presenter.titles() == ["Connection Issue"]
  assert navigator.calls[0] == ("push", "/plan?celebrate=1")


@pytest.mark.anyio
async def test_fallback_mode_reports_configuration_problems(seeded_store, make_session, service, presenter):
  service.generate_daily_plan.side_effect = BasePlanGenerationError("AI service API key is not configured", "generation")
  session = make_session(seeded_store, allow_fallback=True)

  outcome = await session.generate_plan()

  assert outcome == GenerationOutcome.FALLBACK
  assert presenter.titles() == ["Service Issue"]


@pytest.mark.anyio
async def test_persistence_failure_is_a_generation_failure(seeded_store, make_session, service, presenter, daily_plan_factory):
  service.generate_daily_plan.return_value = daily_plan_factory("ai-1")
  seeded_store.add_plan = AsyncMock(side_effect=RuntimeError("database unavailable"))
  session = make_session(seeded_store)

  outcome = await session.generate_plan()

  assert outcome == GenerationOutcome.FAILED
  assert presenter.titles() == [FAILURE_TITLE]


@pytest.mark.anyio
async def test_navigation_falls_back_to_route_without_query(seeded_store, make_session, service, navigator, daily_plan_factory):
  service.generate_daily_plan.return_value = daily_plan_factory("ai-1")
  navigator.failing_routes = {"/plan?celebrate=1"}
  session = make_session(seeded_store)

  outcome = await session.generate_plan()

  assert outcome == GenerationOutcome.READY
  assert navigator.calls[-2:] == [("push", "/plan"), ("replace", "/plan")]


@pytest.mark.anyio
async def test_slow_response_shows_one_encouraging_prompt(seeded_store, make_session, service, presenter, daily_plan_factory):
  async def _slow(*args, **kwargs):
    await asyncio.sleep(0.05)
    return daily_plan_factory("ai-slow")

  service.generate_daily_plan.side_effect = _slow
  session = make_session(seeded_store, slow_response_seconds=0.01)

  outcome = await session.generate_plan()

  assert outcome == GenerationOutcome.READY
  assert presenter.titles() == ["Crafting Your Plan"]
  assert presenter.alerts[0].message in SLOW_PROMPTS


@pytest.mark.anyio
async def test_settle_delay_is_awaited_before_navigation(seeded_store, make_session, service, sleep, daily_plan_factory):
  service.generate_daily_plan.return_value = daily_plan_factory("ai-1")
  session = make_session(seeded_store, settle_delay_seconds=1.5)

  await session.generate_plan()

  sleep.assert_awaited_once_with(1.5)


@pytest.mark.anyio
async def test_orchestrator_opens_sessions_with_configured_policy(seeded_store, service, registry, navigator, presenter, diagnostics, clock):
  policy = DAILY_PLAN_POLICY.with_overrides(allow_fallback=True)
  orchestrator = GenerationOrchestrator(store=seeded_store, service=service, registry=registry, policies={"daily": policy}, diagnostics=diagnostics, clock=clock)

  session = orchestrator.open_session("user-1", "daily", navigator=navigator, presenter=presenter)

  assert session.policy is policy
  assert session.key == ("user-1", "daily")
