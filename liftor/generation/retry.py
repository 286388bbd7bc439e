"""Minimum-interval policy for user-triggered retries."""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class RetryDecision:
  allowed: bool
  remaining_ms: int = 0

  @property
  def remaining_seconds(self) -> int:
    return math.ceil(self.remaining_ms / 1000)


@dataclass(frozen=True)
class RetryPolicy:
  """Reject retries that arrive before last_retry + min_interval_ms."""

  min_interval_ms: int

  def check(self, last_retry_time_ms: int | None, now_ms: int) -> RetryDecision:
    if last_retry_time_ms is None:
      return RetryDecision(allowed=True)

    remaining = last_retry_time_ms + self.min_interval_ms - now_ms
    if remaining > 0:
      return RetryDecision(allowed=False, remaining_ms=remaining)

    return RetryDecision(allowed=True)


def format_wait_message(remaining_seconds: int) -> str:
  """Render the user-facing wait message for a rejected retry."""
  if remaining_seconds >= 60:
    minutes, seconds = divmod(remaining_seconds, 60)
    return f"Please wait {minutes} minute(s) and {seconds} second(s) before trying again."
  return f"Please wait {remaining_seconds} second(s) before trying again."
