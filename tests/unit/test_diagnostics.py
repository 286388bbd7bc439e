from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from liftor.storage.postgres_diagnostics_repo import AttemptRecord
from liftor.telemetry.diagnostics import classify_error, log_plan_generation_attempt


@pytest.mark.parametrize(
  ("error", "expected"),
  [
    (RuntimeError("Network request failed"), "network"),
    (TimeoutError(), "network"),
    ("fetch failed", "network"),
    (RuntimeError("AI service API key is not configured"), "config"),
    (RuntimeError("Invalid configuration"), "config"),
    (ValueError("unexpected token"), "unknown"),
    (None, "unknown"),
  ],
)
def test_classify_error(error, expected) -> None:
  assert classify_error(error) == expected


@pytest.mark.anyio
async def test_failed_attempt_is_recorded() -> None:
  repository = AsyncMock()

  await log_plan_generation_attempt("daily", False, RuntimeError("Network request failed"), {"attempt": 2}, repository=repository)

  record = repository.insert_attempt.await_args.args[0]
  assert record == AttemptRecord(kind="daily", success=False, error_type="RuntimeError", error_category="network", error_message="Network request failed", metadata={"attempt": 2})


@pytest.mark.anyio
async def test_successful_attempt_has_no_error_fields() -> None:
  repository = AsyncMock()

  await log_plan_generation_attempt("base", True, None, repository=repository)

  record = repository.insert_attempt.await_args.args[0]
  assert record.success is True
  assert record.error_type is None
  assert record.error_category is None
  assert record.metadata == {}


@pytest.mark.anyio
async def test_insert_failure_is_swallowed() -> None:
  repository = AsyncMock()
  repository.insert_attempt.side_effect = RuntimeError("database unavailable")

  await log_plan_generation_attempt("daily", True, None, repository=repository)

  repository.insert_attempt.assert_awaited_once()
