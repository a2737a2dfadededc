# app/api/api.py

from fastapi import APIRouter

from app.api.endpoints import import_export

api_router = APIRouter()

api_router.include_router(import_export.router, tags=["Import/Export"])
