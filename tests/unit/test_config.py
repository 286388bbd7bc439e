from __future__ import annotations

import os

import pytest

from liftor.config import get_database_settings, get_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
  for name in list(os.environ):
    if name.startswith("LIFTOR_") or name == "DATABASE_URL":
      monkeypatch.delenv(name, raising=False)
  get_settings.cache_clear()
  get_database_settings.cache_clear()
  yield
  get_settings.cache_clear()
  get_database_settings.cache_clear()


def test_defaults() -> None:
  settings = get_settings()

  assert settings.environment == "development"
  assert settings.debug is False
  assert settings.pg_dsn is None
  assert settings.slow_response_seconds == 45
  assert settings.base_retry_interval_seconds == 180
  assert settings.daily_retry_interval_seconds == 30
  assert settings.daily_allow_fallback is False
  assert settings.settle_delay_seconds == 0
  assert settings.ai_backoff_delays == (5.0, 20.0, 50.0)


def test_generation_policies_follow_settings(monkeypatch) -> None:
  monkeypatch.setenv("LIFTOR_DAILY_ALLOW_FALLBACK", "yes")
  monkeypatch.setenv("LIFTOR_DAILY_RETRY_INTERVAL_SECONDS", "10")
  monkeypatch.setenv("LIFTOR_BASE_PLAN_CYCLE_DAYS", "7")
  settings = get_settings()

  daily = settings.generation_policy("daily")
  base = settings.generation_policy("base")

  assert daily.allow_fallback is True
  assert daily.min_retry_interval_ms == 10_000
  assert daily.success_route == "/plan?celebrate=1"
  assert base.allow_fallback is False
  assert base.min_retry_interval_ms == 180_000
  assert base.base_plan_cycle_days == 7


def test_invalid_number_names_variable(monkeypatch) -> None:
  monkeypatch.setenv("LIFTOR_STALE_JOB_MINUTES", "soon")

  with pytest.raises(ValueError, match="LIFTOR_STALE_JOB_MINUTES"):
    get_settings()


def test_negative_delay_is_rejected(monkeypatch) -> None:
  monkeypatch.setenv("LIFTOR_SETTLE_DELAY_SECONDS", "-1")

  with pytest.raises(ValueError, match="LIFTOR_SETTLE_DELAY_SECONDS"):
    get_settings()


def test_backoff_delays_parse(monkeypatch) -> None:
  monkeypatch.setenv("LIFTOR_AI_BACKOFF_DELAYS", "1, 2,3")

  assert get_settings().ai_backoff_delays == (1.0, 2.0, 3.0)


def test_database_url_fallback(monkeypatch) -> None:
  monkeypatch.setenv("DATABASE_URL", "postgresql://liftor@db/liftor")

  assert get_database_settings().pg_dsn == "postgresql://liftor@db/liftor"
  assert get_settings().pg_dsn == "postgresql://liftor@db/liftor"
