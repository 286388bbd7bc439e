"""Background base-plan generation with persisted per-user job state."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any

from liftor.ai.client import PlanGenerationService
from liftor.generation.errors import RetryTooSoonError
from liftor.generation.models import BasePlanJobState
from liftor.generation.registry import GenerationRegistry, JobHandle, RegistryKey
from liftor.generation.retry import RetryPolicy, format_wait_message
from liftor.notifications.service import PlanNotificationService
from liftor.plans.models import UserProfile
from liftor.storage.job_state_repo import JobStateRepository
from liftor.storage.plan_store import PlanStore
from liftor.telemetry.diagnostics import DiagnosticsLogger, log_plan_generation_attempt
from liftor.utils.dates import parse_iso, utc_now

logger = logging.getLogger(__name__)

STALE_JOB_MESSAGE = "Previous generation timed out. Please try again."
INTERRUPTED_JOB_MESSAGE = "Generation process was interrupted. Please try again."

_ISO_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


class BackgroundPlanGeneration:
  """Start base-plan generation without holding the caller, and track it per user.

  State transitions: idle -> pending -> ready | error. A pending row whose
  process died is detected by age and reset so the user can start again.
  """

  def __init__(
    self,
    *,
    store: PlanStore,
    service: PlanGenerationService,
    registry: GenerationRegistry,
    repo: JobStateRepository,
    notifications: PlanNotificationService,
    retry_policy: RetryPolicy | None = None,
    stale_job_minutes: int = 15,
    pending_grace_seconds: int = 30,
    diagnostics: DiagnosticsLogger = log_plan_generation_attempt,
    clock: Callable[[], datetime] = utc_now,
  ) -> None:
    self._store = store
    self._service = service
    self._registry = registry
    self._repo = repo
    self._notifications = notifications
    self._retry_policy = retry_policy or RetryPolicy(180_000)
    self._stale_after = timedelta(minutes=stale_job_minutes)
    self._grace = timedelta(seconds=pending_grace_seconds)
    self._diagnostics = diagnostics
    self._clock = clock
    self._tasks: dict[str, asyncio.Task[Any]] = {}
    self._detached: set[asyncio.Task[Any]] = set()

  @staticmethod
  def _key(user_id: str) -> RegistryKey:
    return (user_id, "base")

  async def start(self, user: UserProfile) -> str:
    """Begin generation and return the job id immediately; joins a generation already running."""
    key = self._key(user.id)
    current = self._registry.current(key)
    if current is not None:
      logger.info("Background generation already running user_id=%s job_id=%s", user.id, current.job_id)
      return current.job_id

    handle = self._registry.claim(key)
    if handle is None:
      raise RuntimeError("Generation registry claim failed without an owner")

    state = BasePlanJobState(user_id=user.id, status="pending", job_id=handle.job_id, started_at=self._now_iso())
    try:
      await self._repo.save_state(state)
    except Exception:
      self._registry.release(key, handle, "error")
      raise

    task = asyncio.create_task(self._run(user, handle), name=f"base-plan-{handle.job_id}")
    handle.task = task
    self._tasks[user.id] = task
    logger.info("Background generation started user_id=%s job_id=%s", user.id, handle.job_id)
    return handle.job_id

  async def get_state(self, user_id: str) -> BasePlanJobState:
    """Return the job state, resetting a pending job that has outlived its process."""
    state = await self._repo.get_state(user_id)
    if state is None:
      return BasePlanJobState.idle(user_id)

    if state.status == "pending" and not self._registry.in_progress(self._key(user_id)) and self._older_than(state.started_at, self._stale_after):
      logger.warning("Stale pending job reset user_id=%s job_id=%s", user_id, state.job_id)
      return await self._save(BasePlanJobState.idle(user_id, error=STALE_JOB_MESSAGE))

    return state

  async def validate_pending(self, user_id: str) -> bool:
    """Return True only when a pending job is plausibly still running."""
    state = await self._repo.get_state(user_id)
    if state is None or state.status != "pending":
      return False

    if self._registry.in_progress(self._key(user_id)):
      return True

    if self._older_than(state.started_at, self._stale_after):
      await self._save(BasePlanJobState.idle(user_id, error=STALE_JOB_MESSAGE))
      return False

    if self._older_than(state.started_at, self._grace):
      logger.warning("Pending job has no running generation user_id=%s job_id=%s", user_id, state.job_id)
      await self._save(replace(state, status="error", error=INTERRUPTED_JOB_MESSAGE, completed_at=self._now_iso()))
      return False

    return True

  async def cleanup_stale(self, user_id: str) -> bool:
    """Reset a stale pending job at startup; returns True when a reset happened."""
    state = await self._repo.get_state(user_id)
    if state is None or state.status != "pending" or self._registry.in_progress(self._key(user_id)):
      return False
    if not self._older_than(state.started_at, self._stale_after):
      return False

    await self._save(BasePlanJobState.idle(user_id, error=STALE_JOB_MESSAGE))
    return True

  async def cleanup_all_stale(self) -> int:
    """Sweep every pending row at startup; returns how many were reset."""
    reset = 0
    for state in await self._repo.list_pending():
      if await self.cleanup_stale(state.user_id):
        reset += 1
    if reset:
      logger.info("Reset %s stale background generation job(s)", reset)
    return reset

  async def verify(self, user_id: str) -> BasePlanJobState:
    """Mark the generated plan as reviewed by the user."""
    state = await self._repo.get_state(user_id)
    if state is None:
      return BasePlanJobState.idle(user_id)
    return await self._save(replace(state, verified=True))

  async def cancel(self, user_id: str) -> BasePlanJobState:
    """Reset to idle and free the user for a new start.

    A running remote call finishes on its own but no longer updates state.
    """
    abandoned = self._registry.abandon(self._key(user_id))
    task = self._tasks.pop(user_id, None)
    if task is not None and not task.done():
      self._detached.add(task)
      task.add_done_callback(self._detached.discard)
    logger.info("Background generation cancelled user_id=%s job_id=%s", user_id, abandoned.job_id if abandoned else None)
    return await self._save(BasePlanJobState.idle(user_id))

  async def retry(self, user: UserProfile) -> str:
    """Reset and start again, subject to the minimum retry interval since the last completion."""
    state = await self._repo.get_state(user.id)
    if state is not None and state.status != "pending":
      completed = parse_iso(state.completed_at)
      last_ms = int(completed.timestamp() * 1000) if completed else None
      decision = self._retry_policy.check(last_ms, self._now_ms())
      if not decision.allowed:
        raise RetryTooSoonError(decision.remaining_seconds, format_wait_message(decision.remaining_seconds))

    if not self._registry.in_progress(self._key(user.id)):
      await self._save(BasePlanJobState.idle(user.id))
    return await self.start(user)

  async def wait(self, user_id: str) -> None:
    """Wait for the user's running generation task, if any."""
    task = self._tasks.get(user_id)
    if task is not None:
      await asyncio.shield(task)

  async def shutdown(self) -> None:
    """Wait for running generations so their state transitions land before exit."""
    tasks = [*self._tasks.values(), *self._detached]
    if tasks:
      await asyncio.gather(*tasks, return_exceptions=True)

  async def _run(self, user: UserProfile, handle: JobHandle) -> None:
    started = self._clock()
    result = "error"
    try:
      try:
        plan = await self._service.generate_base_plan(user)
        stored = await self._store.add_base_plan(user.id, plan)
      except Exception as exc:  # noqa: BLE001
        logger.error("Background generation failed user_id=%s job_id=%s error_type=%s", user.id, handle.job_id, type(exc).__name__, exc_info=True)
        await self._log_attempt(False, exc, {"jobId": handle.job_id, "generationTime": self._elapsed_ms(started), "background": True})
        if await self._transition(user.id, handle.job_id, status="error", error=str(exc)):
          await self._notifications.send_plan_error(user.id, str(exc))
        return

      result = "ready"
      await self._log_attempt(True, None, {"jobId": handle.job_id, "generationTime": self._elapsed_ms(started), "planDays": len(stored.days), "background": True})
      if await self._transition(user.id, handle.job_id, status="ready", plan_id=stored.id):
        await self._notifications.send_plan_ready(user.id, plan_id=stored.id)
    finally:
      self._registry.release(self._key(user.id), handle, result)
      if self._tasks.get(user.id) is handle.task:
        self._tasks.pop(user.id, None)

  async def _transition(self, user_id: str, job_id: str, *, status: str, error: str | None = None, plan_id: str | None = None) -> bool:
    """Finish the job only if the stored row still belongs to it."""
    try:
      state = await self._repo.get_state(user_id)
      if state is None or state.job_id != job_id or state.status != "pending":
        logger.info("Job state moved on user_id=%s job_id=%s; skipping %s transition", user_id, job_id, status)
        return False
      await self._save(replace(state, status=status, error=error, plan_id=plan_id, completed_at=self._now_iso(), verified=False))
      return True
    except Exception:  # noqa: BLE001
      logger.error("Failed to persist job state user_id=%s job_id=%s status=%s", user_id, job_id, status, exc_info=True)
      return False

  async def _save(self, state: BasePlanJobState) -> BasePlanJobState:
    await self._repo.save_state(state)
    return state

  async def _log_attempt(self, success: bool, error: BaseException | None, metadata: dict[str, Any]) -> None:
    try:
      await self._diagnostics("base", success, error, metadata)
    except Exception:  # noqa: BLE001
      logger.warning("Diagnostics logging failed for background generation", exc_info=True)

  def _older_than(self, started_at: str | None, age: timedelta) -> bool:
    started = parse_iso(started_at)
    if started is None:
      return True
    return self._clock() - started > age

  def _elapsed_ms(self, started: datetime) -> int:
    return int((self._clock() - started).total_seconds() * 1000)

  def _now_ms(self) -> int:
    return int(self._clock().timestamp() * 1000)

  def _now_iso(self) -> str:
    return self._clock().strftime(_ISO_FORMAT)
