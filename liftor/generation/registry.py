"""Process-wide single-flight registry for plan generation."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from liftor.generation.policy import PlanKind
from liftor.utils.ids import generate_job_id

logger = logging.getLogger(__name__)

RegistryKey = tuple[str, PlanKind]


@dataclass
class JobHandle:
  """Ownership token for one in-flight generation."""

  key: RegistryKey
  job_id: str
  future: asyncio.Future[Any]
  task: asyncio.Task[Any] | None = None

  @property
  def done(self) -> bool:
    return self.future.done()


class GenerationRegistry:
  """Map (user id, plan kind) to the handle of the generation currently running.

  claim() checks and sets in one synchronous step, so two coroutines on the
  same loop can never both own a key.
  """

  def __init__(self) -> None:
    self._handles: dict[RegistryKey, JobHandle] = {}

  def claim(self, key: RegistryKey, job_id: str | None = None) -> JobHandle | None:
    if key in self._handles:
      return None

    loop = asyncio.get_running_loop()
    handle = JobHandle(key=key, job_id=job_id or generate_job_id(), future=loop.create_future())
    self._handles[key] = handle
    logger.debug("Claimed generation key=%s job_id=%s", key, handle.job_id)
    return handle

  def current(self, key: RegistryKey) -> JobHandle | None:
    return self._handles.get(key)

  def in_progress(self, key: RegistryKey) -> bool:
    return key in self._handles

  def release(self, key: RegistryKey, handle: JobHandle, result: Any = None) -> None:
    """Resolve the handle and free the key if the caller still owns it."""
    if not handle.future.done():
      handle.future.set_result(result)

    if self._handles.get(key) is handle:
      del self._handles[key]
      logger.debug("Released generation key=%s job_id=%s", key, handle.job_id)

  def abandon(self, key: RegistryKey) -> JobHandle | None:
    """Free the key without resolving its handle; the old owner's release becomes a no-op."""
    handle = self._handles.pop(key, None)
    if handle is not None:
      logger.debug("Abandoned generation key=%s job_id=%s", key, handle.job_id)
    return handle

  async def wait(self, handle: JobHandle) -> Any:
    """Await the owner's result; cancelling the waiter leaves the owner running."""
    return await asyncio.shield(handle.future)
