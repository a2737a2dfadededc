"""
Engine and session wiring.

SQLite is used when no server ``DATABASE_URL`` is configured; foreign keys
are switched on for every SQLite connection. Request handlers obtain a
session through the ``get_db`` dependency.
"""

import logging
from typing import Generator

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import sessionmaker, Session

from app.core.config import settings
from app.db.models import Base

logger = logging.getLogger(__name__)


def get_database_url() -> str:
    """Return the configured database URL, falling back to the SQLite path."""
    return settings.DATABASE_URL or f"sqlite:///{settings.DATABASE_PATH}"


def _create_engine():
    url = get_database_url()
    if url.startswith("sqlite"):
        logger.info(f"Creating SQLite engine for {url}")
        sqlite_engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            pool_pre_ping=True,
        )

        @event.listens_for(sqlite_engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON;")
            cursor.close()

        return sqlite_engine

    logger.info("Creating pooled SQLAlchemy engine")
    return create_engine(
        url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,
    )


engine = _create_engine()

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# -----------------------------------------------------------------------------
# FastAPI Dependency
# -----------------------------------------------------------------------------


def get_db() -> Generator[Session, None, None]:
    """Yield a session that is closed once the request finishes."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        logger.warning("Request failed with an open session, rolled back")
        raise
    finally:
        db.close()


# -----------------------------------------------------------------------------
# Database Verification and Initialization
# -----------------------------------------------------------------------------


def verify_db_connection() -> bool:
    """
    Verify that we can connect to the database.

    Returns:
        True if connection succeeds, False otherwise
    """
    try:
        with engine.connect() as connection:
            result = connection.execute(text("SELECT 1")).scalar()
            logger.info(f"Database connection verified: {result}")
            return True
    except Exception as e:
        logger.error(f"Database connection verification failed: {e}")
        return False


def init_db(reset: bool = False) -> bool:
    """
    Initialize the database schema.

    Args:
        reset: Whether to drop and recreate every table

    Returns:
        True if initialization succeeds, False otherwise
    """
    logger.info("Initializing database schema...")
    if not verify_db_connection():
        logger.error("Engine connection test failed before create_all")
        return False

    try:
        if reset:
            logger.info("Dropping all tables for reset...")
            Base.metadata.drop_all(bind=engine)
        Base.metadata.create_all(bind=engine)
        logger.info(f"Database schema initialized with {len(Base.metadata.tables)} tables")
        return True
    except Exception as e:
        logger.error(f"Database schema initialization failed: {str(e)}")
        logger.exception("Database initialization error details:")
        return False
