"""User-facing alert contracts."""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

ActionHandler = Callable[[], Awaitable[Any] | Any]


@dataclass(frozen=True)
class AlertAction:
  label: str
  handler: ActionHandler | None = None

  async def invoke(self) -> Any:
    """Run the handler, awaiting it when it is a coroutine function."""
    if self.handler is None:
      return None
    result = self.handler()
    if inspect.isawaitable(result):
      return await result
    return result


@dataclass(frozen=True)
class Alert:
  title: str
  message: str
  actions: tuple[AlertAction, ...] = field(default_factory=tuple)
  cancelable: bool = False

  def action(self, label: str) -> AlertAction:
    for candidate in self.actions:
      if candidate.label == label:
        return candidate
    raise KeyError(label)


class AlertPresenter(Protocol):
  def present(self, alert: Alert) -> None:
    """Show an alert to the user without blocking."""
    ...
