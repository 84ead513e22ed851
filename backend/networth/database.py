# backend/networth/database.py
"""
Database connection and session management.

The engine only needs one table (kv_entries), so the database acts as the
persistence substrate behind SqlKeyValueStore:
- SQLite (test/development): StaticPool for in-memory sharing
- PostgreSQL (production): standard connection pool with pre-ping
"""

import logging
from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from .config import settings
from .models import Base

logger = logging.getLogger(__name__)


def _create_engine() -> Engine:
    """
    Create SQLAlchemy engine with environment-appropriate configuration.

    - SQLite: StaticPool keeps a single connection so an in-memory database
      is shared by every session; check_same_thread=False for FastAPI
    - Anything else: default pool with pre-ping health checks
    """
    if settings.is_sqlite:
        logger.info("Configuring SQLite database")
        return create_engine(
            settings.database_url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
            echo=settings.debug,
        )

    logger.info("Configuring database connection pool")
    return create_engine(
        settings.database_url,
        pool_pre_ping=True,
        pool_recycle=3600,
        echo=settings.debug,
    )


engine = _create_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind: Engine | None = None) -> None:
    """Create missing tables. Safe to call on every startup."""
    Base.metadata.create_all(bind or engine)


def get_db() -> Generator[Session, None, None]:
    """
    Dependency that provides a database session.

    Usage:
        @router.get("/items")
        def get_items(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
