# File: app/schemas/__init__.py
"""
Pydantic models for request validation and response serialization.
"""

from .import_export import (
    ErrorResponse,
    ImportReportRead,
    ImportRequest,
    ImportResponse,
    ImportRowResultRead,
    ImportSummary,
    MessageResponse,
)

__all__ = [
    'ErrorResponse',
    'ImportReportRead',
    'ImportRequest',
    'ImportResponse',
    'ImportRowResultRead',
    'ImportSummary',
    'MessageResponse',
]
