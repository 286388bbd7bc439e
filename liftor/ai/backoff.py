"""Retry logic with specific backoff strategy."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

T = TypeVar("T")
logger = logging.getLogger(__name__)

DEFAULT_DELAYS: tuple[float, ...] = (5, 20, 50)


def is_rate_limited(error: BaseException) -> bool:
  """Return True for quota and 429 errors that are worth waiting out."""
  error_msg = str(error)
  is_quota_error = "Resource Exhausted" in error_msg or "Quota Exceeded" in error_msg
  is_rate_limit = "429" in error_msg or "Too Many Requests" in error_msg
  return is_quota_error or is_rate_limit


async def retry_with_backoff(func: Callable[[], Awaitable[T]], *, delays: Sequence[float] = DEFAULT_DELAYS, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep) -> T:
  """
  Execute func with retries for 429/Quota errors, then one final attempt.

  Delays default to 5s, 20s, 50s.
  """
  for attempt, delay in enumerate(delays):
    try:
      return await func()
    except Exception as e:
      if not is_rate_limited(e):
        # Non-retryable error, raise immediately
        raise
      logger.warning("Retry attempt %d/%d needed. Error: %s. Retrying in %ss...", attempt + 1, len(delays), e, delay)
      await sleep(delay)

  # Final attempt
  return await func()
