from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError

from liftor import __version__
from liftor.ai.errors import PlanGenerationError
from liftor.api.routes import plans
from liftor.core.exceptions import global_exception_handler, http_exception_handler, plan_generation_exception_handler, request_validation_exception_handler, retry_too_soon_exception_handler
from liftor.core.lifespan import lifespan
from liftor.core.middleware import RequestLoggingMiddleware
from liftor.generation.errors import RetryTooSoonError


def create_app() -> FastAPI:
  """Build the FastAPI application with handlers, middleware and routes."""
  app = FastAPI(title="Liftor Engine", version=__version__, lifespan=lifespan, docs_url=None, redoc_url=None)

  # Add exception handlers
  app.add_exception_handler(Exception, global_exception_handler)
  app.add_exception_handler(HTTPException, http_exception_handler)
  app.add_exception_handler(PlanGenerationError, plan_generation_exception_handler)
  app.add_exception_handler(RetryTooSoonError, retry_too_soon_exception_handler)
  app.add_exception_handler(RequestValidationError, request_validation_exception_handler)

  app.add_middleware(RequestLoggingMiddleware)

  @app.get("/health", include_in_schema=False)
  async def health_check() -> dict[str, str]:
    """Return a simple health status."""
    return {"status": "ok", "version": __version__}

  app.include_router(plans.router, prefix="/v1/plans", tags=["plans"])
  return app


app = create_app()
