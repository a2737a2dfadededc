# File: app/api/endpoints/__init__.py
"""
API endpoints package for the back-office.
"""

from app.api.endpoints import import_export

__all__ = ["import_export"]
