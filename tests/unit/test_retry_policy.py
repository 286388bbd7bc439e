from __future__ import annotations

import pytest

from liftor.generation.retry import RetryPolicy, format_wait_message


def test_first_retry_is_always_allowed() -> None:
  assert RetryPolicy(30_000).check(None, 5).allowed is True


@pytest.mark.parametrize(
  ("last", "now", "expected"),
  [
    (1_000, 1_001, 30),
    (1_000, 2_000, 29),
    (1_000, 30_999, 1),
  ],
)
def test_remaining_seconds_round_up(last: int, now: int, expected: int) -> None:
  decision = RetryPolicy(30_000).check(last, now)
  assert decision.allowed is False
  assert decision.remaining_seconds == expected


def test_retry_allowed_once_interval_has_elapsed() -> None:
  policy = RetryPolicy(180_000)
  assert policy.check(0, 180_000).allowed is True
  assert policy.check(0, 179_999).allowed is False


def test_wait_message_uses_minutes_for_long_waits() -> None:
  assert format_wait_message(45) == "Please wait 45 second(s) before trying again."
  assert format_wait_message(125) == "Please wait 2 minute(s) and 5 second(s) before trying again."
