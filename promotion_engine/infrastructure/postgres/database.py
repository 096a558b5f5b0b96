#promotion_engine\infrastructure\postgres\database.py

"""SQLAlchemy engine and session factory for the history table."""

from functools import lru_cache
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from promotion_engine.infrastructure.postgres.config import get_database_settings


# ============================================
# Base for ORM models
# ============================================
Base = declarative_base()


# ============================================
# Engine configuration
# ============================================
def create_db_engine(database_url: Optional[str] = None) -> Engine:
    """
    Create SQLAlchemy engine.

    PostgreSQL URLs get the pooled production engine. SQLite URLs (local
    runs and tests) share one connection so an in-memory database survives
    across sessions.
    """
    settings = get_database_settings()
    url = make_url(database_url or settings.database_url)

    if url.get_backend_name() == "sqlite":
        return create_engine(
            url,
            echo=settings.echo_sql,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    return create_engine(
        url,
        echo=settings.echo_sql,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        pool_timeout=settings.pool_timeout,
        pool_recycle=settings.pool_recycle,
    )


@lru_cache
def get_engine() -> Engine:
    """Production engine, created on first use."""
    return create_db_engine()


# ============================================
# Session factory function
# ============================================
def get_session_factory(engine_instance: Optional[Engine] = None) -> sessionmaker:
    """
    Session factory bound to `engine_instance` (default: production engine).

    Tests pass their own engine here.
    """
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine_instance or get_engine(),
        expire_on_commit=False
    )


def init_db(engine_instance: Optional[Engine] = None) -> None:
    """Create tables directly (tests and local SQLite runs; use Alembic in production)."""
    Base.metadata.create_all(bind=engine_instance or get_engine())
