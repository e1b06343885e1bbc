"""
RAC Dashboard Database Configuration

Sets up the async SQLAlchemy engine, session factory, and declarative base.
Uses SQLite locally (racdash.db next to this file) through the aiosqlite driver.

Architecture:
    - SQLAlchemy 2.0 style with mapped_column and type annotations
    - asyncio extension: create_async_engine + async_sessionmaker
    - SQLite for local development; change DATABASE_URL only to switch to
      PostgreSQL (postgresql+asyncpg://...)
    - All models inherit from Base (defined here)

Key Design Decisions:
    - One AsyncSession per unit of work. Concurrent company loads each open
      their own session from SessionLocal; sessions are never shared
      between tasks.
    - expire_on_commit=False so ORM rows stay readable after commit
    - echo=False by default; set SQLALCHEMY_ECHO=true for SQL debugging
"""

import os
from pathlib import Path

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

_DB_DIR = Path(__file__).parent
DATABASE_URL = os.environ.get(
    "DATABASE_URL",
    f"sqlite+aiosqlite:///{_DB_DIR / 'racdash.db'}"
)


def build_engine(url: str = DATABASE_URL, **kwargs) -> AsyncEngine:
    """
    Create an async engine for the given URL.

    SQLite connections get foreign keys and WAL journaling enabled so that
    concurrent company loads can write while readers consolidate.
    """
    kwargs.setdefault("echo", os.environ.get("SQLALCHEMY_ECHO", "false").lower() == "true")
    if "sqlite" not in url:
        kwargs.setdefault("pool_pre_ping", True)
    async_engine = create_async_engine(url, **kwargs)

    if "sqlite" in url:
        @event.listens_for(async_engine.sync_engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, connection_record):
            """Enable foreign key support and WAL mode for SQLite connections."""
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

    return async_engine


def build_session_factory(async_engine: AsyncEngine) -> async_sessionmaker:
    """Session factory bound to an engine; every unit of work gets its own session."""
    return async_sessionmaker(async_engine, expire_on_commit=False, autoflush=False)


engine = build_engine()
SessionLocal = build_session_factory(engine)


class Base(DeclarativeBase):
    """
    Declarative base class for all SQLAlchemy ORM models.
    All RAC Dashboard tables inherit from this base.
    """
    pass


async def get_db():
    """
    FastAPI dependency that provides a database session.
    Yields a session and ensures it's closed after the request.

    Usage in FastAPI endpoints:
        @router.get("/items")
        async def get_items(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with SessionLocal() as db:
        yield db


async def init_db(async_engine: AsyncEngine = engine):
    """
    Create all database tables from ORM model definitions.
    Called during application startup and by the test fixtures.
    """
    from . import models  # noqa: F401 — side-effect import to register models
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
