"""Identifier utilities."""

from __future__ import annotations

import secrets
import string
import time


def generate_job_id() -> str:
  """Return a new generation job identifier."""
  return f"job_{int(time.time() * 1000)}_{generate_nanoid(7).lower()}"


def epoch_ms_id() -> str:
  """Return the current epoch milliseconds as a string id, as used by locally built plans."""
  return str(int(time.time() * 1000))


def generate_nanoid(size: int = 16) -> str:
  """Return a short non-sequential id suitable for public references."""
  alphabet = string.ascii_letters + string.digits
  return "".join(secrets.choice(alphabet) for _ in range(size))
