"""Database configuration for SQLAlchemy.

This module owns the process-wide engine and session factory. The engine is
created on first use from `settings.DATABASE_URL` and disposed by `shutdown()`.
SQLite connections get `PRAGMA foreign_keys=ON` so the store enforces the
cascade / set-null rules declared on the models.
"""

import logging
from functools import lru_cache

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from sqlalchemy.pool import StaticPool

from .settings import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base class for ORM models."""
    pass


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def make_engine(url: str) -> Engine:
    """Create an SQLAlchemy engine depending on the database URL."""
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
        if url.endswith(":///:memory:"):
            engine = create_engine(
                url,
                connect_args=connect_args,
                poolclass=StaticPool,
            )
        else:
            engine = create_engine(
                url,
                connect_args=connect_args,
                pool_pre_ping=True,
            )
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine
    return create_engine(url, pool_pre_ping=True)


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """Return the shared engine, creating it on first use."""
    logger.info("Creating database engine")
    return make_engine(settings.DATABASE_URL)


@lru_cache(maxsize=1)
def get_sessionmaker() -> sessionmaker:
    """Return the session factory bound to the shared engine."""
    return sessionmaker(bind=get_engine(), autoflush=False, autocommit=False)


def init_db() -> None:
    """Create any missing tables."""
    from . import models  # noqa: F401  (register mappers on Base.metadata)

    Base.metadata.create_all(bind=get_engine())


def shutdown() -> None:
    """Dispose the shared engine and forget it; the next use creates a new one."""
    if get_engine.cache_info().currsize:
        get_engine().dispose()
        logger.info("Database connections closed")
    get_sessionmaker.cache_clear()
    get_engine.cache_clear()
