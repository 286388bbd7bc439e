"""Storage interface for background base-plan job state."""

from __future__ import annotations

from dataclasses import replace
from typing import Protocol

from liftor.generation.models import BasePlanJobState


class JobStateRepository(Protocol):
  """Repository contract for per-user background job state."""

  async def get_state(self, user_id: str) -> BasePlanJobState | None:
    """Fetch the stored state, or None when the user never started a job."""

  async def save_state(self, state: BasePlanJobState) -> None:
    """Insert or replace the state row for state.user_id."""

  async def list_pending(self) -> list[BasePlanJobState]:
    """Return every state row still marked pending."""


class InMemoryJobStateRepository:
  """In-memory job state for tests and local runs."""

  def __init__(self) -> None:
    self._states: dict[str, BasePlanJobState] = {}

  async def get_state(self, user_id: str) -> BasePlanJobState | None:
    state = self._states.get(user_id)
    # Hand out copies so callers cannot mutate stored rows in place.
    return replace(state) if state is not None else None

  async def save_state(self, state: BasePlanJobState) -> None:
    self._states[state.user_id] = replace(state)

  async def list_pending(self) -> list[BasePlanJobState]:
    return [replace(state) for state in self._states.values() if state.status == "pending"]
