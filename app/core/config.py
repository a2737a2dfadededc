# File: app/core/config.py
"""
Configuration settings for the Vigilanza back office.

This module defines application settings using Pydantic's BaseSettings,
which supports environment variable loading and validation.
"""

import json
from typing import Any, Dict, List, Optional, Union

from pydantic import AnyHttpUrl, validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    This class uses Pydantic's BaseSettings to load configuration from
    environment variables, with validation and type conversion.
    """

    # API settings
    API_STR: str = "/api"
    PROJECT_NAME: str = "Vigilanza Backoffice"

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    PRODUCTION: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS
    BACKEND_CORS_ORIGINS: List[Union[AnyHttpUrl, str]] = []

    @validator("BACKEND_CORS_ORIGINS", pre=True)
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse CORS origins from environment variables."""
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return parsed
            except json.JSONDecodeError:
                # Fallback to comma-separated format
                return [i.strip() for i in v.split(",") if i.strip()]
        return v or []

    # Database
    DATABASE_PATH: str = "vigilanza.db"
    DATABASE_HOST: Optional[str] = None
    DATABASE_PORT: Optional[str] = None
    DATABASE_USER: Optional[str] = None
    DATABASE_PASSWORD: Optional[str] = None
    DATABASE_NAME: Optional[str] = None
    DATABASE_URL: Optional[str] = None

    # Database pool tuning (ignored for SQLite)
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800

    @validator("DATABASE_URL", pre=True)
    def assemble_db_connection(cls, v: Optional[str], values: Dict[str, Any]) -> Any:
        """Assemble database connection string."""
        if isinstance(v, str) and v:
            return v
        if (
                values.get("DATABASE_HOST")
                and values.get("DATABASE_PORT")
                and values.get("DATABASE_USER")
                and values.get("DATABASE_NAME")
        ):
            password = values.get("DATABASE_PASSWORD") or ""
            return f"postgresql://{values['DATABASE_USER']}:{password}@{values['DATABASE_HOST']}:{values['DATABASE_PORT']}/{values['DATABASE_NAME']}"
        return f"sqlite:///{values.get('DATABASE_PATH', 'vigilanza.db')}"

    # ================================
    # Import / Export
    # ================================

    # Abort a running import between rows once this many seconds have elapsed (0 disables)
    IMPORT_TIMEOUT_SECONDS: int = 300
    # Maximum number of rows accepted in a single import request
    IMPORT_MAX_ROWS: int = 10000
    # Restrict the importable/exportable tables; empty means every known entity type
    IMPORTABLE_ENTITY_TYPES: List[str] = []

    # Display formatting applied by exports
    EXPORT_TRUE_LABEL: str = "Sì"
    EXPORT_FALSE_LABEL: str = "No"
    EXPORT_DATE_FORMAT: str = "%d/%m/%Y"
    EXPORT_DATETIME_FORMAT: str = "%d/%m/%Y %H:%M"

    @validator("IMPORTABLE_ENTITY_TYPES", pre=True)
    def parse_importable_entity_types(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse the entity type allow-list from a JSON or comma-separated value."""
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return parsed
            except json.JSONDecodeError:
                return [i.strip() for i in v.split(",") if i.strip()]
        return v or []

    @validator("IMPORT_TIMEOUT_SECONDS", "IMPORT_MAX_ROWS")
    def validate_non_negative(cls, v: int) -> int:
        """Negative limits are treated as disabled."""
        return max(0, v)

    @validator("LOG_LEVEL")
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid logging level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        return v.upper() if v.upper() in valid_levels else "INFO"

    class Config:
        """Pydantic settings configuration."""

        case_sensitive = True
        env_file = ".env"


# Create settings instance
settings = Settings()
