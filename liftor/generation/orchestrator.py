"""Plan generation orchestration.

A GenerationSession stands in for one generating screen: it checks
preconditions, makes exactly one remote call per attempt, persists the result
and then drives navigation. Sessions for the same (user, kind) share a
GenerationRegistry so only one remote call is ever in flight.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any

from liftor.ai.client import PlanGenerationService
from liftor.ai.errors import BasePlanGenerationError
from liftor.generation.alerts import Alert, AlertAction, AlertPresenter
from liftor.generation.errors import MissingBasePlanError, MissingCheckinError, MissingUserError, PreconditionError
from liftor.generation.models import GenerationJob, GenerationOutcome
from liftor.generation.navigation import Navigator, navigate_with_fallback
from liftor.generation.policy import BASE_PLAN_POLICY, DAILY_PLAN_POLICY, HOME_ROUTE, GenerationPolicy, PlanKind
from liftor.generation.registry import GenerationRegistry, JobHandle
from liftor.generation.retry import RetryPolicy, format_wait_message
from liftor.plans.fallback import create_emergency_fallback_plan
from liftor.plans.models import CheckinData, DailyPlan, UserProfile, WeeklyBasePlan
from liftor.storage.plan_store import PlanStore
from liftor.telemetry.diagnostics import DiagnosticsLogger, classify_error, log_plan_generation_attempt
from liftor.utils.dates import parse_iso, utc_now

logger = logging.getLogger(__name__)

SLOW_PROMPTS = (
  "Your data’s one of a kind we’re tailoring this plan just right",
  "This one’s special. Give us a moment to fine-tune everything",
  "Your plan’s being crafted with extra care. give us a moment",
  "this isn’t just any plan… it’s yours. Hold tight",
  "We’re refining every detail to make this match you perfectly",
  "Unique input calls for a custom touch just a few seconds more",
)

RECENT_CHECKIN_DAYS = 15

FAILURE_TITLE = "We're experiencing high demand"
FAILURE_MESSAGE = "Due to high demand we're having an issue. Try again in a bit; contact us if this persists."


@dataclass
class _Inputs:
  user: UserProfile
  checkin: CheckinData | None = None
  recent_checkins: list[CheckinData] | None = None
  base_plan: WeeklyBasePlan | None = None


class GenerationSession:
  """One generation flow for a user and plan kind, bound to a navigator and alert presenter."""

  def __init__(
    self,
    user_id: str,
    policy: GenerationPolicy,
    *,
    store: PlanStore,
    service: PlanGenerationService,
    registry: GenerationRegistry,
    navigator: Navigator,
    presenter: AlertPresenter,
    diagnostics: DiagnosticsLogger = log_plan_generation_attempt,
    clock: Callable[[], datetime] = utc_now,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    rng: random.Random | None = None,
  ) -> None:
    self.user_id = user_id
    self.policy = policy
    self.job = GenerationJob()
    self.mounted = True
    self.retry_policy = RetryPolicy(policy.min_retry_interval_ms)
    self._store = store
    self._service = service
    self._registry = registry
    self._navigator = navigator
    self._presenter = presenter
    self._diagnostics = diagnostics
    self._clock = clock
    self._sleep = sleep
    self._rng = rng or random.Random()
    self._in_flight = False
    self._slow_timer: asyncio.TimerHandle | None = None

  @property
  def key(self) -> tuple[str, PlanKind]:
    return (self.user_id, self.policy.kind)

  def close(self) -> None:
    """Mark the session unmounted; in-flight work still persists but stops touching UI."""
    self.mounted = False
    self._cancel_slow_timer()

  async def generate_plan(self, force_regen: bool = False) -> GenerationOutcome:
    """Run one generation attempt, or join the attempt already in flight for this key."""
    # Claim before the first await so a second call can never slip past the guard.
    if self._in_flight:
      return await self._join(self._registry.current(self.key))

    handle = self._registry.claim(self.key)
    if handle is None:
      return await self._join(self._registry.current(self.key))

    self._in_flight = True
    outcome = GenerationOutcome.FAILED
    try:
      outcome = await self._run(force_regen)
      return outcome
    finally:
      self._in_flight = False
      self._registry.release(self.key, handle, outcome)

  async def handle_retry(self, now_ms: int | None = None) -> GenerationOutcome | None:
    """Retry after a failure, enforcing the minimum interval between retries."""
    now = now_ms if now_ms is not None else self._now_ms()
    decision = self.retry_policy.check(self.job.last_retry_time_ms, now)
    if not decision.allowed:
      logger.info("Retry rejected key=%s remaining_seconds=%d", self.key, decision.remaining_seconds)
      self._present(Alert(title="Please Wait", message=format_wait_message(decision.remaining_seconds), actions=(AlertAction("OK"),), cancelable=True))
      return None

    self.job.last_retry_time_ms = now
    self.job.retry_count += 1
    self.job.reset()
    logger.info("Retrying generation key=%s retry_count=%d", self.key, self.job.retry_count)
    return await self.generate_plan(force_regen=True)

  async def _join(self, handle: JobHandle | None) -> GenerationOutcome:
    logger.info("Generation already in flight key=%s; joining", self.key)
    if handle is not None:
      await self._registry.wait(handle)
    return GenerationOutcome.JOINED

  async def _run(self, force_regen: bool) -> GenerationOutcome:
    started_ms = self._now_ms()
    self.job.started_at_ms = started_ms
    inputs: _Inputs | None = None

    try:
      if not force_regen and await self._has_existing_plan():
        logger.info("Plan already exists key=%s; skipping generation", self.key)
        if self.mounted:
          navigate_with_fallback(self._navigator, self.policy.existing_plan_route, home_route=HOME_ROUTE)
        return GenerationOutcome.SKIPPED_EXISTING

      inputs = await self._load_inputs()
    except PreconditionError as exc:
      logger.warning("Generation blocked key=%s reason=%s", self.key, type(exc).__name__)
      route = exc.redirect_route
      self._present(Alert(title=exc.title, message=str(exc), actions=(AlertAction("OK", lambda: self._replace(route)),)))
      return GenerationOutcome.BLOCKED
    except Exception as exc:  # noqa: BLE001
      return await self._handle_failure(exc, inputs, started_ms)

    self._start_slow_timer()
    try:
      plan = await self._call_service(inputs)
      generation_ms = self._now_ms() - started_ms
      await self._persist(plan)
    except Exception as exc:  # noqa: BLE001
      return await self._handle_failure(exc, inputs, started_ms)
    finally:
      self._cancel_slow_timer()

    await self._log_attempt(True, None, self._success_metadata(plan, inputs, generation_ms))
    await self._finish_success(started_ms)
    return GenerationOutcome.READY

  async def _has_existing_plan(self) -> bool:
    if self.policy.kind == "daily":
      return await self._store.get_today_plan(self.user_id, today=self._today()) is not None

    current = await self._store.get_current_base_plan(self.user_id)
    if current is None or self.policy.base_plan_cycle_days <= 0:
      return False
    created = parse_iso(current.created_at)
    if created is None:
      return False
    return self._clock() - created < timedelta(days=self.policy.base_plan_cycle_days)

  async def _load_inputs(self) -> _Inputs:
    user = await self._store.get_user(self.user_id)
    if user is None:
      raise MissingUserError()
    if self.policy.kind == "base":
      return _Inputs(user=user)

    today = self._today()
    checkin = await self._store.get_today_checkin(self.user_id, today=today)
    if checkin is None:
      raise MissingCheckinError()
    base_plan = await self._store.get_current_base_plan(self.user_id)
    if base_plan is None:
      raise MissingBasePlanError()
    recent = await self._store.get_recent_checkins(self.user_id, RECENT_CHECKIN_DAYS, today=today)
    return _Inputs(user=user, checkin=checkin, recent_checkins=recent, base_plan=base_plan)

  async def _call_service(self, inputs: _Inputs) -> DailyPlan | WeeklyBasePlan:
    if self.policy.kind == "base":
      return await self._service.generate_base_plan(inputs.user)
    return await self._service.generate_daily_plan(inputs.user, inputs.checkin, inputs.recent_checkins or [], inputs.base_plan)

  async def _persist(self, plan: DailyPlan | WeeklyBasePlan) -> None:
    if isinstance(plan, WeeklyBasePlan):
      await self._store.add_base_plan(self.user_id, plan)
    else:
      await self._store.add_plan(self.user_id, plan)

  async def _handle_failure(self, exc: BaseException, inputs: _Inputs | None, started_ms: int) -> GenerationOutcome:
    category = classify_error(exc)
    logger.error("Plan generation failed key=%s error_type=%s category=%s", self.key, type(exc).__name__, category, exc_info=exc)
    await self._log_attempt(False, exc, self._failure_metadata(exc, inputs, started_ms))

    if self.policy.allow_fallback and self.policy.kind == "daily" and inputs is not None and inputs.checkin is not None:
      fallback = create_emergency_fallback_plan(inputs.checkin, inputs.user, today=self._today())
      try:
        await self._store.add_plan(self.user_id, fallback)
      except Exception as persist_exc:  # noqa: BLE001
        logger.error("Fallback plan could not be saved key=%s", self.key, exc_info=persist_exc)
        self._surface_error(persist_exc)
        return GenerationOutcome.FAILED

      logger.info("Saved fallback plan key=%s plan_id=%s", self.key, fallback.id)
      if category == "network":
        self._present(Alert(title="Connection Issue", message="Unable to reach AI services. Using your base plan with today's adjustments.", actions=(AlertAction("OK"),)))
      elif category == "config":
        self._present(Alert(title="Service Issue", message="Using your base plan adapted for today's check-in.", actions=(AlertAction("OK"),)))
      await self._finish_success(started_ms)
      return GenerationOutcome.FALLBACK

    self._surface_error(exc)
    return GenerationOutcome.FAILED

  def _surface_error(self, exc: BaseException) -> None:
    if not self.mounted:
      return
    self.job.status = "error"
    self.job.error_message = str(exc)
    self._present(
      Alert(
        title=FAILURE_TITLE,
        message=FAILURE_MESSAGE,
        actions=(AlertAction("Go Back", lambda: self._replace(self.policy.on_failure_route)), AlertAction("Try Again", self.handle_retry)),
        cancelable=True,
      )
    )

  async def _finish_success(self, started_ms: int) -> None:
    if not self.mounted:
      logger.info("Session closed before completion key=%s; plan saved without navigation", self.key)
      return

    self.job.status = "ready"
    self.job.elapsed_seconds = (self._now_ms() - started_ms) / 1000
    if self.policy.settle_delay_seconds > 0:
      await self._sleep(self.policy.settle_delay_seconds)
      if not self.mounted:
        return
    navigate_with_fallback(self._navigator, self.policy.success_route, home_route=HOME_ROUTE)

  def _start_slow_timer(self) -> None:
    if self.policy.slow_response_seconds <= 0:
      return
    loop = asyncio.get_running_loop()
    self._slow_timer = loop.call_later(self.policy.slow_response_seconds, self._show_slow_prompt)

  def _cancel_slow_timer(self) -> None:
    if self._slow_timer is not None:
      self._slow_timer.cancel()
      self._slow_timer = None

  def _show_slow_prompt(self) -> None:
    self._slow_timer = None
    self._present(Alert(title="Crafting Your Plan", message=self._rng.choice(SLOW_PROMPTS), actions=(AlertAction("OK"),), cancelable=True))

  def _present(self, alert: Alert) -> None:
    if not self.mounted:
      return
    self._presenter.present(alert)

  def _replace(self, route: str) -> None:
    try:
      self._navigator.replace(route)
    except Exception:  # noqa: BLE001
      logger.error("Navigation to %s failed", route, exc_info=True)

  async def _log_attempt(self, success: bool, error: BaseException | None, metadata: dict[str, Any]) -> None:
    try:
      await self._diagnostics(self.policy.kind, success, error, metadata)
    except Exception:  # noqa: BLE001
      logger.warning("Diagnostics logging failed key=%s", self.key, exc_info=True)

  def _success_metadata(self, plan: DailyPlan | WeeklyBasePlan, inputs: _Inputs, generation_ms: int) -> dict[str, Any]:
    if isinstance(plan, WeeklyBasePlan):
      return {"generationTime": generation_ms, "planDays": len(plan.days)}
    checkin = inputs.checkin
    return {"generationTime": generation_ms, "checkinEnergy": checkin.energy if checkin else None, "checkinStress": checkin.stress if checkin else None}

  def _failure_metadata(self, exc: BaseException, inputs: _Inputs | None, started_ms: int) -> dict[str, Any]:
    metadata: dict[str, Any] = {
      "attempt": self.job.retry_count + 1,
      "generationTime": self._now_ms() - started_ms,
      "errorType": type(exc).__name__,
      "errorCategory": classify_error(exc),
      "userDataPresent": inputs is not None,
    }
    if self.policy.kind == "daily":
      metadata["checkinPresent"] = bool(inputs and inputs.checkin)
      metadata["basePlanPresent"] = bool(inputs and inputs.base_plan)
    if isinstance(exc, BasePlanGenerationError):
      metadata["stage"] = exc.stage
    return metadata

  def _now_ms(self) -> int:
    return int(self._clock().timestamp() * 1000)

  def _today(self) -> date:
    return self._clock().date()


class GenerationOrchestrator:
  """Holds the collaborators shared by every generation session."""

  def __init__(
    self,
    *,
    store: PlanStore,
    service: PlanGenerationService,
    registry: GenerationRegistry,
    policies: Mapping[PlanKind, GenerationPolicy] | None = None,
    diagnostics: DiagnosticsLogger = log_plan_generation_attempt,
    clock: Callable[[], datetime] = utc_now,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
  ) -> None:
    self.store = store
    self.service = service
    self.registry = registry
    self.policies: dict[PlanKind, GenerationPolicy] = dict(policies or {"base": BASE_PLAN_POLICY, "daily": DAILY_PLAN_POLICY})
    self._diagnostics = diagnostics
    self._clock = clock
    self._sleep = sleep

  def open_session(self, user_id: str, kind: PlanKind, *, navigator: Navigator, presenter: AlertPresenter, policy: GenerationPolicy | None = None, rng: random.Random | None = None) -> GenerationSession:
    return GenerationSession(
      user_id,
      policy or self.policies[kind],
      store=self.store,
      service=self.service,
      registry=self.registry,
      navigator=navigator,
      presenter=presenter,
      diagnostics=self._diagnostics,
      clock=self._clock,
      sleep=self._sleep,
      rng=rng,
    )
