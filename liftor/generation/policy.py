"""Per-kind orchestration policy."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Literal

PlanKind = Literal["base", "daily"]

HOME_ROUTE = "/(tabs)/home"


@dataclass(frozen=True)
class GenerationPolicy:
  """Knobs that distinguish base-plan and daily-plan generation."""

  kind: PlanKind
  allow_fallback: bool
  min_retry_interval_ms: int
  on_failure_route: str
  success_route: str
  existing_plan_route: str
  slow_response_seconds: float = 45.0
  settle_delay_seconds: float = 0.0
  base_plan_cycle_days: int = 14

  def with_overrides(self, **changes: Any) -> GenerationPolicy:
    return replace(self, **changes)


BASE_PLAN_POLICY = GenerationPolicy(
  kind="base",
  allow_fallback=False,
  min_retry_interval_ms=180_000,
  on_failure_route=HOME_ROUTE,
  success_route="/plan-preview",
  existing_plan_route="/plan-preview",
)

DAILY_PLAN_POLICY = GenerationPolicy(
  kind="daily",
  allow_fallback=False,
  min_retry_interval_ms=30_000,
  on_failure_route=HOME_ROUTE,
  success_route="/plan?celebrate=1",
  existing_plan_route="/plan",
)
