"""Database session and base configuration.

WHAT:
    Provides the SQLAlchemy engine and session factory for the catalog store.
    Exposes a FastAPI dependency and a context manager for database access.

WHY:
    Every marketplace operation is one or a few store round-trips inside a
    single request. Correctness under concurrent writers relies entirely on
    the store's transactions and atomic UPDATE statements, so all services
    share this one session factory.

USAGE:
    # FastAPI endpoints
    from catalogx.database import get_db

    @router.get("/items")
    def list_items(db: Session = Depends(get_db)):
        ...

    # Scripts and workers
    from catalogx.database import get_sync_session

    with get_sync_session() as db:
        sync_all_product_price_ranges(db)

REFERENCES:
    - https://docs.sqlalchemy.org/en/20/orm/session_basics.html
    - catalogx/routers/ (consumers of these sessions)
"""

import os
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker


# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================

def _get_database_url() -> str:
    """Get DATABASE_URL from environment, loading .env if needed.

    Returns:
        Database connection string (PostgreSQL in production, SQLite in tests)

    Raises:
        RuntimeError: If DATABASE_URL is not configured
    """
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        # Fall back to a local .env (developer machines)
        from catalogx.utils.env import load_env_file
        load_env_file()
        database_url = os.getenv("DATABASE_URL")

    if not database_url:
        raise RuntimeError(
            "DATABASE_URL is not configured: export it or add it to backend/.env"
        )

    # Heroku-style URL
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)

    return database_url


DATABASE_URL = _get_database_url()


# =============================================================================
# ENGINE
# =============================================================================

# Postgres pool sized for request-scoped sessions plus background tracking
# sessions; connections are recycled hourly and pinged before checkout.
# SQLite (tests) takes neither pool sizing option.
if DATABASE_URL.startswith("sqlite"):
    engine = create_engine(
        DATABASE_URL,
        connect_args={"check_same_thread": False},
    )
else:
    engine = create_engine(
        DATABASE_URL,
        pool_size=10,
        max_overflow=20,
        pool_recycle=3600,
        pool_pre_ping=True,
    )

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


# Base is defined in catalogx.models to ensure a single registry across the app
from .models import Base  # noqa: E402


# =============================================================================
# FASTAPI DEPENDENCIES
# =============================================================================

def get_db() -> Generator[Session, None, None]:
    """Yield a database session for FastAPI dependency injection.

    Yields:
        SQLAlchemy Session instance, closed when the request finishes
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# =============================================================================
# CONTEXT MANAGERS (for non-FastAPI usage)
# =============================================================================

@contextmanager
def get_sync_session() -> Generator[Session, None, None]:
    """Context manager for sessions outside FastAPI.

    WHAT:
        Creates a session with automatic cleanup.

    WHY:
        For scripts (price range backfill) and tests where FastAPI
        dependency injection is not in play.

    Example:
        with get_sync_session() as db:
            products = db.query(Product).all()
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
