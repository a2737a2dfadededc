# app/main.py
"""
ASGI entry point for the Vigilanza back-office import/export API.
"""

import json
import logging
import time
from datetime import datetime

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.api.api import api_router
from app.core.config import settings
from app.core.events import setup_event_handlers
from app.core.exceptions import BackofficeException, StorageError, ValidationException
from app.db.session import init_db

APP_VERSION = "1.0.0"
DEV_CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]
STATIC_SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}

log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
logging.basicConfig(level=log_level, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
logger = logging.getLogger("app")
logger.setLevel(log_level)
logger.info(f"Logging at {logging.getLevelName(log_level)} ({settings.ENVIRONMENT})")

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Bulk import/export API for the security back-office",
    version=APP_VERSION,
    openapi_url=f"{settings.API_STR}/openapi.json",
    docs_url=f"{settings.API_STR}/docs",
    redoc_url=f"{settings.API_STR}/redoc",
)

cors_origins = [str(origin) for origin in (settings.BACKEND_CORS_ORIGINS or []) if origin]
if not cors_origins:
    logger.warning(f"BACKEND_CORS_ORIGINS is empty, allowing {DEV_CORS_ORIGINS}")
    cors_origins = DEV_CORS_ORIGINS

# Content-Disposition is exposed so browsers can read export filenames
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
    max_age=86400,
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = jsonable_encoder(exc.errors())
    logger.warning(f"Invalid request {request.method} {request.url.path}: {json.dumps(errors)}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Richiesta non valida", "details": {"validation_errors": errors}},
    )


@app.exception_handler(BackofficeException)
async def backoffice_error_handler(request: Request, exc: BackofficeException):
    if isinstance(exc, ValidationException):
        code = status.HTTP_400_BAD_REQUEST
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    if isinstance(exc, StorageError):
        logger.error(f"{request.method} {request.url.path} hit a storage error: {exc.message}")
    return JSONResponse(status_code=code, content={"error": exc.message, **exc.to_dict()})


@app.middleware("http")
async def access_log(request: Request, call_next):
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        logger.exception(
            f"{request.method} {request.url.path} raised after {time.perf_counter() - started:.3f}s"
        )
        raise
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} "
        f"in {time.perf_counter() - started:.3f}s"
    )
    return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds hardening headers to every non-preflight response."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        if request.method == "OPTIONS":
            return response
        response.headers.update(STATIC_SECURITY_HEADERS)
        if settings.PRODUCTION and request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


app.add_middleware(SecurityHeadersMiddleware)

setup_event_handlers(app)


@app.on_event("startup")
async def ensure_schema():
    init_db()
    logger.info("Database schema ready")


app.include_router(api_router, prefix=settings.API_STR)


@app.get("/", tags=["Root"], summary="Service information")
def service_info():
    return {
        "name": settings.PROJECT_NAME,
        "version": APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "docs_url": app.docs_url,
        "openapi_url": app.openapi_url,
    }


@app.get("/health", tags=["Health"], summary="Liveness probe")
def health_check():
    return {"status": "ok", "timestamp": datetime.now().isoformat()}
