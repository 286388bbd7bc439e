"""Lightweight .env loader for local configuration."""

from __future__ import annotations

import os
from pathlib import Path


def default_env_path() -> Path:
  """Return the .env path, honoring LIFTOR_ENV_FILE when set."""
  override = os.getenv("LIFTOR_ENV_FILE")
  if override:
    return Path(override)

  return Path(__file__).resolve().parents[2] / ".env"


def _parse_line(raw_line: str) -> tuple[str, str] | None:
  """Split one KEY=value line, skipping comments and malformed entries."""
  line = raw_line.strip()
  if not line or line.startswith("#"):
    return None
  if line.startswith("export "):
    line = line[len("export ") :].lstrip()
  if "=" not in line:
    return None

  key, value = line.split("=", 1)
  key = key.strip()
  value = value.strip()
  if not key:
    return None

  # Strip one layer of matching quotes.
  if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
    value = value[1:-1]

  return key, value


def load_env_file(path: Path, *, override: bool = False) -> dict[str, str]:
  """Load key=value pairs from a .env file into the process environment and return what was applied."""
  applied: dict[str, str] = {}
  if not path.is_file():
    return applied

  for raw_line in path.read_text(encoding="utf-8").splitlines():
    parsed = _parse_line(raw_line)
    if parsed is None:
      continue
    key, value = parsed
    if not override and key in os.environ:
      continue
    os.environ[key] = value
    applied[key] = value

  return applied
