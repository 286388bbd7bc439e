"""Remote plan generation service client."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from datetime import date
from typing import Any, Protocol, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from liftor.ai.backoff import DEFAULT_DELAYS, retry_with_backoff
from liftor.ai.errors import BasePlanGenerationError
from liftor.config import Settings
from liftor.plans.baseline import build_daily_baseline
from liftor.plans.models import CheckinData, DailyPlan, UserProfile, WeeklyBasePlan

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class PlanGenerationService(Protocol):
  """Remote generator for weekly base plans and daily plans."""

  async def generate_base_plan(self, user: UserProfile) -> WeeklyBasePlan:
    """Generate a weekly base plan or raise PlanGenerationError."""

  async def generate_daily_plan(self, user: UserProfile, checkin: CheckinData, recent_checkins: list[CheckinData], base_plan: WeeklyBasePlan) -> DailyPlan:
    """Generate today's plan or raise PlanGenerationError."""


class _RateLimitedError(RuntimeError):
  """Raised inside an attempt so the backoff loop can retry it."""


def _validation_details(exc: ValidationError) -> list[str]:
  return [f"{'.'.join(str(part) for part in error['loc']) or '<root>'}: {error['msg']}" for error in exc.errors()]


class HttpPlanGenerationService:
  """POST JSON to the plan generation backend and validate the reply."""

  def __init__(
    self,
    base_url: str | None,
    api_key: str | None,
    *,
    timeout: float = 120.0,
    backoff_delays: Sequence[float] = DEFAULT_DELAYS,
    transport: httpx.AsyncBaseTransport | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
  ) -> None:
    self._base_url = base_url.rstrip("/") if base_url else None
    self._api_key = api_key
    self._timeout = timeout
    self._backoff_delays = tuple(backoff_delays)
    self._transport = transport
    self._sleep = sleep

  @classmethod
  def from_settings(cls, settings: Settings) -> HttpPlanGenerationService:
    return cls(settings.ai_base_url, settings.ai_api_key, timeout=settings.ai_timeout_seconds, backoff_delays=settings.ai_backoff_delays)

  def _build_client(self) -> httpx.AsyncClient:
    # Never trust environment proxy variables for backend calls.
    return httpx.AsyncClient(transport=self._transport, timeout=self._timeout, trust_env=False)

  async def generate_base_plan(self, user: UserProfile) -> WeeklyBasePlan:
    payload = {"user": user.to_payload()}
    plan = await self._request("/v1/plans/base", payload, WeeklyBasePlan)
    if not plan.days:
      raise BasePlanGenerationError("Generated base plan has no days", "validation", details=["days: empty"])
    return plan

  async def generate_daily_plan(self, user: UserProfile, checkin: CheckinData, recent_checkins: list[CheckinData], base_plan: WeeklyBasePlan) -> DailyPlan:
    baseline = build_daily_baseline(user, checkin, base_plan, date.fromisoformat(checkin.date[:10]))
    payload = {
      "user": user.to_payload(),
      "checkin": checkin.to_payload(),
      "recentCheckins": [entry.to_payload() for entry in recent_checkins],
      "basePlan": base_plan.to_payload(),
      "baseline": baseline.to_payload(),
    }
    return await self._request("/v1/plans/daily", payload, DailyPlan)

  async def _request(self, path: str, payload: dict[str, Any], model: type[ModelT]) -> ModelT:
    if not self._base_url:
      raise BasePlanGenerationError("AI service configuration is missing a base URL", "generation")
    if not self._api_key:
      raise BasePlanGenerationError("AI service API key is not configured", "generation")

    url = f"{self._base_url}{path}"
    started = time.monotonic()

    async def _attempt() -> Any:
      async with self._build_client() as client:
        response = await client.post(url, json=payload, headers={"authorization": f"Bearer {self._api_key}"})
      if response.status_code == 429 or (response.status_code >= 400 and "Resource Exhausted" in response.text):
        raise _RateLimitedError(f"429 Too Many Requests from {path}")
      if response.status_code >= 400:
        raise BasePlanGenerationError(f"AI service returned HTTP {response.status_code} for {path}", "generation")
      try:
        return response.json()
      except ValueError as exc:
        raise BasePlanGenerationError(f"AI service returned invalid JSON for {path}", "validation", details=[str(exc)]) from exc

    try:
      body = await retry_with_backoff(_attempt, delays=self._backoff_delays, sleep=self._sleep)
    except _RateLimitedError as exc:
      raise BasePlanGenerationError(f"AI service is rate limited: {exc}", "generation", attempt=len(self._backoff_delays) + 1) from exc
    except httpx.TransportError as exc:
      logger.error("Plan generation request to %s failed: %s", path, exc)
      raise BasePlanGenerationError(f"AI service network error: {type(exc).__name__}", "generation") from exc

    plan_body = body.get("plan", body) if isinstance(body, dict) else body
    try:
      plan = model.model_validate(plan_body)
    except ValidationError as exc:
      details = _validation_details(exc)
      logger.warning("Plan generation response from %s failed validation: %s", path, details)
      raise BasePlanGenerationError(f"AI service returned an invalid {model.__name__}", "validation", details=details) from exc

    logger.info("Plan generation request to %s succeeded in %.2fs", path, time.monotonic() - started)
    return plan
