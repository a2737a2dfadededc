# File: app/db/init_db.py
"""
Database initialization entry point.

Creates the database directory (for SQLite) and every table.

    python -m app.db.init_db [--reset]
"""

import logging
import os
import sys
from pathlib import Path

from app.core.config import settings
from app.db.session import get_database_url, init_db

logger = logging.getLogger(__name__)


def create_database_directory():
    """Create the SQLite database directory if it doesn't exist."""
    if not get_database_url().startswith("sqlite"):
        return
    db_dir = Path(settings.DATABASE_PATH).parent
    if not db_dir.exists():
        logger.info(f"Creating database directory: {db_dir}")
        os.makedirs(db_dir, exist_ok=True)


def main(reset: bool = False) -> bool:
    """
    Initialize the database.

    Args:
        reset: Whether to reset the database by dropping all tables first
    """
    create_database_directory()
    if init_db(reset=reset):
        logger.info("Database initialized successfully")
        return True
    logger.error("Database initialization failed")
    return False


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    sys.exit(0 if main(reset="--reset" in sys.argv) else 1)
