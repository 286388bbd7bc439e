"""Diagnostics for plan generation attempts."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Literal

from liftor.config import get_settings

if TYPE_CHECKING:
  from liftor.storage.postgres_diagnostics_repo import AttemptRecord, PostgresDiagnosticsRepository

ErrorCategory = Literal["network", "config", "unknown"]
DiagnosticsLogger = Callable[[str, bool, BaseException | None, dict[str, Any]], Awaitable[None]]

logger = logging.getLogger(__name__)

_NETWORK_MARKERS = ("network", "fetch", "timeout", "timed out", "connect")
_CONFIG_MARKERS = ("api key", "configuration", "not configured")


def classify_error(error: BaseException | str | None) -> ErrorCategory:
  """Bucket an error into network, config or unknown by its message."""
  if error is None:
    return "unknown"

  if isinstance(error, BaseException):
    text = f"{type(error).__name__}: {error}".lower()
  else:
    text = error.lower()

  if any(marker in text for marker in _NETWORK_MARKERS):
    return "network"
  if any(marker in text for marker in _CONFIG_MARKERS):
    return "config"
  return "unknown"


def _diagnostics_enabled() -> bool:
  """Return True when attempt rows should be written to the database."""
  settings = get_settings()

  return bool(settings.diagnostics_enabled and settings.pg_dsn)


@lru_cache(maxsize=1)
def _get_repository() -> PostgresDiagnosticsRepository | None:
  """Cache the repository so repeated inserts reuse configuration."""
  if not _diagnostics_enabled():
    return None

  from liftor.storage.postgres_diagnostics_repo import PostgresDiagnosticsRepository

  try:
    return PostgresDiagnosticsRepository()
  except RuntimeError as exc:
    logger.warning("Plan diagnostics persistence disabled: %s", exc)
    return None


async def log_plan_generation_attempt(kind: str, success: bool, error: BaseException | None, metadata: dict[str, Any] | None = None, *, repository: PostgresDiagnosticsRepository | None = None) -> None:
  """Record one generation attempt; never raises."""
  metadata = dict(metadata or {})
  category = classify_error(error) if error is not None else None
  error_type = type(error).__name__ if error is not None else None

  if success:
    logger.info("Plan generation attempt kind=%s success=true metadata=%s", kind, metadata)
  else:
    logger.warning("Plan generation attempt kind=%s success=false error_type=%s category=%s metadata=%s", kind, error_type, category, metadata)

  repo = repository if repository is not None else _get_repository()
  if repo is None:
    return

  from liftor.storage.postgres_diagnostics_repo import AttemptRecord

  record = AttemptRecord(kind=kind, success=success, error_type=error_type, error_category=category, error_message=str(error) if error is not None else None, metadata=metadata)
  await _insert_record(repo, record)


async def _insert_record(repo: PostgresDiagnosticsRepository, record: AttemptRecord) -> int | None:
  """Insert a record and swallow database failures to avoid breaking generation."""
  try:
    return await repo.insert_attempt(record)

  except Exception as exc:  # noqa: BLE001 - diagnostics must not affect control flow
    logger.warning("Failed to insert plan generation attempt: %s", exc)
    return None
