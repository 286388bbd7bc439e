import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from urllib.parse import urlparse

from fastapi import FastAPI

from liftor.ai.client import HttpPlanGenerationService, PlanGenerationService
from liftor.config import Settings
from liftor.core.database import dispose_engine
from liftor.core.logging import _initialize_logging
from liftor.generation.background import BackgroundPlanGeneration
from liftor.generation.orchestrator import GenerationOrchestrator
from liftor.generation.registry import GenerationRegistry
from liftor.generation.retry import RetryPolicy
from liftor.notifications.service import PlanNotificationService
from liftor.storage.job_state_repo import InMemoryJobStateRepository, JobStateRepository
from liftor.storage.plan_store import InMemoryPlanStore, PlanStore


@dataclass
class EngineServices:
  """Process-wide collaborators shared by every request."""

  registry: GenerationRegistry
  store: PlanStore
  job_states: JobStateRepository
  service: PlanGenerationService
  notifications: PlanNotificationService
  background: BackgroundPlanGeneration
  orchestrator: GenerationOrchestrator


def build_services(
  settings: Settings,
  *,
  store: PlanStore | None = None,
  job_states: JobStateRepository | None = None,
  service: PlanGenerationService | None = None,
  notifications: PlanNotificationService | None = None,
) -> EngineServices:
  """Wire the engine from settings; explicit arguments win over configured backends."""
  if store is None or job_states is None:
    if settings.pg_dsn:
      from liftor.storage.postgres_job_state_repo import PostgresJobStateRepository
      from liftor.storage.postgres_plan_store import PostgresPlanStore

      store = store or PostgresPlanStore()
      job_states = job_states or PostgresJobStateRepository()
    else:
      store = store or InMemoryPlanStore()
      job_states = job_states or InMemoryJobStateRepository()

  registry = GenerationRegistry()
  service = service or HttpPlanGenerationService.from_settings(settings)
  notifications = notifications or PlanNotificationService()
  policies = {"base": settings.generation_policy("base"), "daily": settings.generation_policy("daily")}
  background = BackgroundPlanGeneration(
    store=store,
    service=service,
    registry=registry,
    repo=job_states,
    notifications=notifications,
    retry_policy=RetryPolicy(policies["base"].min_retry_interval_ms),
    stale_job_minutes=settings.stale_job_minutes,
    pending_grace_seconds=settings.pending_grace_seconds,
  )
  orchestrator = GenerationOrchestrator(store=store, service=service, registry=registry, policies=policies)
  return EngineServices(registry=registry, store=store, job_states=job_states, service=service, notifications=notifications, background=background, orchestrator=orchestrator)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Set up logging and the engine services, then drain background work on shutdown."""
  from liftor.config import get_settings

  settings = get_settings()
  logger = logging.getLogger("liftor.core.lifespan")

  try:
    _initialize_logging(settings)
    logger.info("Startup complete - logging verified.")
  except Exception:  # noqa: BLE001
    logger.warning("Initial logging setup failed; continuing with default handlers.", exc_info=True)

  if getattr(app.state, "services", None) is None:
    logger.info("Building engine services; LIFTOR_PG_DSN=%s", _redact_dsn(settings.pg_dsn))
    app.state.services = build_services(settings)

  services: EngineServices = app.state.services
  try:
    await services.background.cleanup_all_stale()
  except Exception:  # noqa: BLE001
    logger.warning("Stale job cleanup failed at startup", exc_info=True)

  yield

  await services.background.shutdown()
  await dispose_engine()


def _redact_dsn(raw: str | None) -> str:
  """Redact credentials from a DSN while keeping host/db visible."""
  if not raw:
    return "<unset>"

  parsed = urlparse(raw)
  if not parsed.scheme:
    return "<invalid>"

  user = parsed.username or ""
  host = parsed.hostname or ""
  port = f":{parsed.port}" if parsed.port else ""
  netloc = f"{user}@{host}{port}" if user else f"{host}{port}"
  database = parsed.path.lstrip("/")
  path = f"/{database}" if database else ""
  return f"{parsed.scheme}://{netloc}{path}"
