"""Contracts for plan notification delivery."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol


@dataclass(frozen=True)
class PlanNotification:
  """A user-facing notification about plan generation."""

  user_id: str
  title: str
  body: str
  data: dict[str, str] = field(default_factory=dict)


class NotificationError(Exception):
  """Base class for all notification delivery failures."""


class NotificationProviderError(NotificationError):
  """Exception raised when a delivery provider rejects a notification."""


class NotificationSender(Protocol):
  """Delivery contract for sending plan notifications."""

  async def send(self, notification: PlanNotification) -> None:
    """Deliver a notification or raise NotificationError."""
