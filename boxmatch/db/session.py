from __future__ import annotations

from collections.abc import Generator

from loguru import logger
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from boxmatch.config.settings import settings

# Lazy initialization to avoid import-time database connections
_engine = None
_SessionLocal = None


def _get_engine():
    """Get or create the database engine (lazy initialization)."""
    global _engine
    if _engine is None:
        logger.info("Initializing database engine", database_url=settings.database_url)

        connect_args = {}
        if "sqlite" in settings.database_url.lower():
            logger.warning("Using SQLite database (local development only)")
            connect_args = {"check_same_thread": False}

        _engine = create_engine(
            settings.database_url,
            connect_args=connect_args,
            echo=False,
            pool_pre_ping=True,
            pool_recycle=3600,
        )
        logger.info("Database engine initialized")
    return _engine


def _get_session_local():
    """Get or create the session factory (lazy initialization)."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_get_engine())
        logger.info("Database session factory initialized")
    return _SessionLocal


def init_db() -> None:
    """Create all tables that do not exist yet."""
    from boxmatch.db.models import Base

    Base.metadata.create_all(bind=_get_engine())
    logger.info("Database schema ensured")


def get_db() -> Generator[Session, None, None]:
    """Get database session for FastAPI dependencies.

    Plain generator usable directly with Depends().
    """
    session = _get_session_local()()
    try:
        yield session
    finally:
        session.close()

