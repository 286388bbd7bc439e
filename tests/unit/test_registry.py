from __future__ import annotations

import asyncio

import pytest

from liftor.generation.registry import GenerationRegistry


@pytest.mark.anyio
async def test_second_claim_for_same_key_is_refused() -> None:
  registry = GenerationRegistry()

  handle = registry.claim(("user-1", "daily"))

  assert handle is not None
  assert registry.claim(("user-1", "daily")) is None
  assert registry.claim(("user-1", "base")) is not None
  assert registry.current(("user-1", "daily")) is handle


@pytest.mark.anyio
async def test_release_resolves_waiters_and_frees_key() -> None:
  registry = GenerationRegistry()
  handle = registry.claim(("user-1", "daily"), job_id="job-1")
  waiter = asyncio.create_task(registry.wait(handle))
  await asyncio.sleep(0)

  registry.release(("user-1", "daily"), handle, "ready")

  assert await waiter == "ready"
  assert handle.done is True
  assert registry.in_progress(("user-1", "daily")) is False


@pytest.mark.anyio
async def test_stale_handle_cannot_release_new_owner() -> None:
  registry = GenerationRegistry()
  key = ("user-1", "base")
  old = registry.claim(key)
  registry.release(key, old)
  new = registry.claim(key)

  registry.release(key, old, "late")

  assert registry.current(key) is new


@pytest.mark.anyio
async def test_cancelled_waiter_leaves_owner_running() -> None:
  registry = GenerationRegistry()
  key = ("user-1", "daily")
  handle = registry.claim(key)
  waiter = asyncio.create_task(registry.wait(handle))
  await asyncio.sleep(0)

  waiter.cancel()
  with pytest.raises(asyncio.CancelledError):
    await waiter

  assert handle.future.cancelled() is False
  registry.release(key, handle, "ready")
  assert handle.future.result() == "ready"


@pytest.mark.anyio
async def test_abandoned_key_can_be_claimed_again() -> None:
  registry = GenerationRegistry()
  key = ("user-1", "base")
  old = registry.claim(key)

  assert registry.abandon(key) is old
  new = registry.claim(key)
  registry.release(key, old, "late")

  assert new is not None
  assert registry.current(key) is new
  assert old.done is True
  assert registry.abandon(("user-2", "base")) is None
