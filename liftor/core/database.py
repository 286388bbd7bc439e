from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from liftor.config import get_database_settings


class Base(DeclarativeBase):
  pass


engine: AsyncEngine | None = None
SessionLocal: async_sessionmaker[AsyncSession] | None = None


def normalize_database_url(database_url: str | None) -> str | None:
  """Rewrite plain postgres DSNs to the asyncpg driver."""
  if database_url and database_url.startswith("postgresql://"):
    return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
  return database_url


def _database_url() -> str | None:
  """Build the SQLAlchemy database URL while keeping settings evaluation minimal."""
  return normalize_database_url(get_database_settings().pg_dsn)


def get_db_engine() -> AsyncEngine | None:
  global engine
  settings = get_database_settings()
  database_url = _database_url()
  if engine is None and database_url:
    connect_args = {"timeout": settings.pg_connect_timeout} if database_url.startswith("postgresql+asyncpg://") else {}
    engine = create_async_engine(database_url, echo=settings.debug, future=True, connect_args=connect_args)
  return engine


def get_session_factory() -> async_sessionmaker[AsyncSession] | None:
  global SessionLocal
  if SessionLocal is None:
    db_engine = get_db_engine()
    if db_engine:
      SessionLocal = async_sessionmaker(bind=db_engine, expire_on_commit=False, class_=AsyncSession)
  return SessionLocal


async def dispose_engine() -> None:
  """Close pooled connections on shutdown."""
  global engine, SessionLocal
  if engine is not None:
    await engine.dispose()
  engine = None
  SessionLocal = None
