# File: app/core/exceptions.py

from typing import Dict, Any, List, Optional
from datetime import datetime


class BackofficeException(Exception):
    """Base exception for all back-office errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize a back-office exception.

        Args:
            message: Human-readable error message
            code: Optional machine-processable error code
            details: Additional error details
        """
        self.message = message
        self.code = code or "GENERIC_ERROR"
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for API responses.

        Returns:
            Dictionary representation of the exception
        """
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "timestamp": datetime.now().isoformat(),
        }


# Validation exceptions
class ValidationException(BackofficeException):
    """Raised when input validation fails."""

    def __init__(
        self, message: str, validation_errors: Optional[Dict[str, List[str]]] = None
    ):
        super().__init__(
            message, "VALIDATION_001", {"validation_errors": validation_errors or {}}
        )


# Import-related exceptions
class ImportException(BackofficeException):
    """Base exception for row-level import failures."""

    CODE_PREFIX = "IMPORT_"


class MappingError(ImportException):
    """Raised when a raw row cannot be turned into a canonical payload."""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(
            f"Campo '{field}': {reason}",
            f"{self.CODE_PREFIX}MAPPING_001",
            {"field": field, "reason": reason},
        )


class ForeignKeyError(ImportException):
    """Raised when a foreign key value does not reference an existing row."""

    def __init__(self, field: str, value: Any, ref_table: str):
        self.field = field
        self.value = value
        self.ref_table = ref_table
        super().__init__(
            f"Errore: ID {field.upper()} '{value}' non trovato nella tabella '{ref_table}'.",
            f"{self.CODE_PREFIX}FK_001",
            {"field": field, "value": value, "ref_table": ref_table},
        )


class BatchAbort(ImportException):
    """
    Raised when an import batch is cancelled between rows.

    Rows processed before the abort remain committed; ``report`` holds
    their results.
    """

    def __init__(self, reason: str, report: Any = None):
        self.reason = reason
        self.report = report
        details: Dict[str, Any] = {"reason": reason}
        if report is not None and hasattr(report, "to_dict"):
            details["report"] = report.to_dict()
        super().__init__(
            f"Import interrotto: {reason}",
            f"{self.CODE_PREFIX}ABORT_001",
            details,
        )


# Storage exceptions
class StorageError(BackofficeException):
    """Raised when a storage read or write fails."""

    CODE_PREFIX = "STORAGE_"

    def __init__(self, operation: str, table: str, message: str):
        self.operation = operation
        self.table = table
        super().__init__(
            f"Storage {operation} on '{table}' failed: {message}",
            f"{self.CODE_PREFIX}001",
            {"operation": operation, "table": table},
        )
