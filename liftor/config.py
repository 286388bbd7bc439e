"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from liftor.generation.policy import BASE_PLAN_POLICY, DAILY_PLAN_POLICY, GenerationPolicy, PlanKind
from liftor.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)


@dataclass(frozen=True)
class Settings:
  """Typed settings for the Liftor plan engine."""

  environment: str
  debug: bool
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  pg_dsn: str | None
  pg_connect_timeout: int
  ai_base_url: str | None
  ai_api_key: str | None
  ai_timeout_seconds: float
  ai_backoff_delays: tuple[float, ...]
  diagnostics_enabled: bool
  slow_response_seconds: float
  base_retry_interval_seconds: int
  daily_retry_interval_seconds: int
  daily_allow_fallback: bool
  settle_delay_seconds: float
  stale_job_minutes: int
  pending_grace_seconds: int
  base_plan_cycle_days: int

  def generation_policy(self, kind: PlanKind) -> GenerationPolicy:
    """Build the orchestration policy for one plan kind from the configured knobs."""
    if kind == "base":
      return BASE_PLAN_POLICY.with_overrides(
        min_retry_interval_ms=self.base_retry_interval_seconds * 1000, slow_response_seconds=self.slow_response_seconds, settle_delay_seconds=self.settle_delay_seconds, base_plan_cycle_days=self.base_plan_cycle_days
      )

    return DAILY_PLAN_POLICY.with_overrides(
      allow_fallback=self.daily_allow_fallback, min_retry_interval_ms=self.daily_retry_interval_seconds * 1000, slow_response_seconds=self.slow_response_seconds, settle_delay_seconds=self.settle_delay_seconds
    )


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value


def _positive_int(name: str, default: str, *, allow_zero: bool = False) -> int:
  raw = os.getenv(name, default)
  try:
    value = int(raw)
  except ValueError as exc:
    raise ValueError(f"{name} must be an integer.") from exc

  if value < 0 or (value == 0 and not allow_zero):
    qualifier = "zero or a positive integer" if allow_zero else "a positive integer"
    raise ValueError(f"{name} must be {qualifier}.")

  return value


def _non_negative_float(name: str, default: str) -> float:
  raw = os.getenv(name, default)
  try:
    value = float(raw)
  except ValueError as exc:
    raise ValueError(f"{name} must be a number.") from exc

  if value < 0:
    raise ValueError(f"{name} must not be negative.")

  return value


def _parse_delays(raw: str | None) -> tuple[float, ...]:
  """Parse a comma-separated list of backoff delays in seconds."""
  if raw is None or raw.strip() == "":
    return (5.0, 20.0, 50.0)

  try:
    delays = tuple(float(part) for part in raw.split(",") if part.strip())
  except ValueError as exc:
    raise ValueError("LIFTOR_AI_BACKOFF_DELAYS must be a comma-separated list of seconds.") from exc

  if any(delay < 0 for delay in delays):
    raise ValueError("LIFTOR_AI_BACKOFF_DELAYS must not contain negative values.")

  return delays


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("LIFTOR_ENV", "development").lower()
  debug = _parse_bool(os.getenv("LIFTOR_DEBUG"))

  log_max_bytes = _positive_int("LIFTOR_LOG_MAX_BYTES", "5242880")  # 5MB default
  log_backup_count = _positive_int("LIFTOR_LOG_BACKUP_COUNT", "10", allow_zero=True)
  # Allow opt-in logging of 4xx HTTPExceptions for diagnostics.
  log_http_4xx = _parse_bool(os.getenv("LIFTOR_LOG_HTTP_4XX"))

  ai_timeout_seconds = _non_negative_float("LIFTOR_AI_TIMEOUT_SECONDS", "120")
  if ai_timeout_seconds == 0:
    raise ValueError("LIFTOR_AI_TIMEOUT_SECONDS must be a positive number.")

  return Settings(
    environment=environment,
    debug=debug,
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_http_4xx=log_http_4xx,
    pg_dsn=_optional_str(os.getenv("LIFTOR_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL")),
    pg_connect_timeout=_positive_int("LIFTOR_PG_CONNECT_TIMEOUT", "5"),
    ai_base_url=_optional_str(os.getenv("LIFTOR_AI_BASE_URL")),
    ai_api_key=_optional_str(os.getenv("LIFTOR_AI_API_KEY")),
    ai_timeout_seconds=ai_timeout_seconds,
    ai_backoff_delays=_parse_delays(os.getenv("LIFTOR_AI_BACKOFF_DELAYS")),
    diagnostics_enabled=_parse_bool(os.getenv("LIFTOR_DIAGNOSTICS_ENABLED")),
    slow_response_seconds=_non_negative_float("LIFTOR_SLOW_RESPONSE_SECONDS", "45"),
    base_retry_interval_seconds=_positive_int("LIFTOR_BASE_RETRY_INTERVAL_SECONDS", "180", allow_zero=True),
    daily_retry_interval_seconds=_positive_int("LIFTOR_DAILY_RETRY_INTERVAL_SECONDS", "30", allow_zero=True),
    daily_allow_fallback=_parse_bool(os.getenv("LIFTOR_DAILY_ALLOW_FALLBACK")),
    settle_delay_seconds=_non_negative_float("LIFTOR_SETTLE_DELAY_SECONDS", "0"),
    stale_job_minutes=_positive_int("LIFTOR_STALE_JOB_MINUTES", "15"),
    pending_grace_seconds=_positive_int("LIFTOR_PENDING_GRACE_SECONDS", "30", allow_zero=True),
    base_plan_cycle_days=_positive_int("LIFTOR_BASE_PLAN_CYCLE_DAYS", "14", allow_zero=True),
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring AI or orchestration configuration."""
  debug = _parse_bool(os.getenv("LIFTOR_DEBUG"))
  pg_connect_timeout = _positive_int("LIFTOR_PG_CONNECT_TIMEOUT", "5")
  pg_dsn = _optional_str(os.getenv("LIFTOR_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL"))

  return DatabaseSettings(debug=debug, pg_dsn=pg_dsn, pg_connect_timeout=pg_connect_timeout)
