"""Date helpers shared by the store and plan builders."""

from __future__ import annotations

from datetime import UTC, date, datetime

WEEKDAY_KEYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
_ISO_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def utc_now() -> datetime:
  """Return an aware UTC timestamp."""
  return datetime.now(tz=UTC)


def utc_now_iso() -> str:
  """Return the current UTC time as an ISO-8601 string with a Z suffix."""
  return utc_now().strftime(_ISO_FORMAT)


def today_iso(today: date | None = None) -> str:
  """Return YYYY-MM-DD for the given day (UTC today by default)."""
  return (today or utc_now().date()).isoformat()


def weekday_key(day: date) -> str:
  """Return the lowercase weekday name used as a base-plan day key."""
  return WEEKDAY_KEYS[day.weekday()]


def parse_iso(value: str | None) -> datetime | None:
  """Parse an ISO timestamp or date into an aware datetime, returning None when unparseable."""
  if not value:
    return None

  try:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
  except ValueError:
    return None

  if parsed.tzinfo is None:
    parsed = parsed.replace(tzinfo=UTC)

  return parsed
