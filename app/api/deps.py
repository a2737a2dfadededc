# app/api/deps.py
"""
FastAPI dependencies for the back-office API.

Provides the request-scoped database session, the storage collaborator
and service injection for API routes.
"""

import logging

from fastapi import Depends
from sqlalchemy.orm import Session

# Database session provider
from app.db.session import get_db
from app.repositories.storage_repository import StorageRepository
from app.services.import_export_service import ImportExportService

logger = logging.getLogger(__name__)

__all__ = ["get_db", "get_storage", "get_import_export_service"]


# --- Service Dependency Injectors ---

def get_storage(db: Session = Depends(get_db)) -> StorageRepository:
    """Provides a StorageRepository bound to the request session."""
    return StorageRepository(db)


def get_import_export_service(
        storage: StorageRepository = Depends(get_storage),
) -> ImportExportService:
    """Provides an instance of ImportExportService."""
    logger.debug("Providing ImportExportService instance.")
    return ImportExportService(storage=storage)
