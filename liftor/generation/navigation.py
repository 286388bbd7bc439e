"""Navigator contract and the layered fallback used after generation."""

from __future__ import annotations

import logging
from typing import Protocol
from urllib.parse import urlsplit

from liftor.generation.policy import HOME_ROUTE

logger = logging.getLogger(__name__)


class Navigator(Protocol):
  def push(self, route: str) -> None: ...

  def replace(self, route: str) -> None: ...


def strip_query(route: str) -> str:
  """Return the route without its query string."""
  return urlsplit(route).path or route


def navigate_with_fallback(navigator: Navigator, route: str, *, fallback_route: str | None = None, home_route: str = HOME_ROUTE) -> str | bool:
  """Land on route, degrading to its bare path and then to home.

  Returns the route that was reached, or False when every attempt raised.
  """
  fallback_route = fallback_route or strip_query(route)
  try:
    navigator.push(route)
    navigator.replace(route)
    return route
  except Exception:  # noqa: BLE001
    logger.warning("Navigation to %s failed; trying %s", route, fallback_route, exc_info=True)

  try:
    navigator.push(fallback_route)
    navigator.replace(fallback_route)
    return fallback_route
  except Exception:  # noqa: BLE001
    logger.warning("Navigation to %s failed; falling back to %s", fallback_route, home_route, exc_info=True)

  try:
    navigator.replace(home_route)
    return home_route
  except Exception:  # noqa: BLE001
    logger.error("Navigation to %s failed; giving up", home_route, exc_info=True)
    return False
