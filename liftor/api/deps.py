"""Shared FastAPI dependencies for caller identity and engine services."""

from __future__ import annotations

import logging

from fastapi import Depends, Header, HTTPException, Request, status

from liftor.core.lifespan import EngineServices
from liftor.plans.models import UserProfile

logger = logging.getLogger(__name__)


async def get_user_id(x_user_id: str | None = Header(default=None)) -> str:
  """Identify the caller from the X-User-Id header."""
  if x_user_id is None or not x_user_id.strip():
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-User-Id header")
  return x_user_id.strip()


async def get_services(request: Request) -> EngineServices:
  """Return the services built during startup."""
  services = getattr(request.app.state, "services", None)
  if services is None:
    logger.error("Engine services requested before startup completed")
    raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Service is starting up")
  return services


async def get_user_profile(user_id: str = Depends(get_user_id), services: EngineServices = Depends(get_services)) -> UserProfile:  # noqa: B008
  """Load the caller's profile or fail with 404."""
  user = await services.store.get_user(user_id)
  if user is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User profile not found")
  return user
