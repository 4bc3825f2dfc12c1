"""Batch quote calculator error handling.

Custom exceptions and error codes for the quoting core and its adapters.
"""

from typing import Optional, Dict, Any


# Error Codes
class ErrorCode:
    """Error code constants."""

    # Validation Errors (1xxx)
    INVALID_SNAPSHOT = "INVALID_SNAPSHOT"

    # Schema Errors (2xxx)
    UNUSABLE_SCHEMA = "UNUSABLE_SCHEMA"
    COMPUTE_FAILED = "COMPUTE_FAILED"
    INVALID_FORMULA = "INVALID_FORMULA"

    # Lookup Errors (3xxx)
    QUOTATION_NOT_FOUND = "QUOTATION_NOT_FOUND"
    ITEM_NOT_FOUND = "ITEM_NOT_FOUND"

    # Tabular Source Errors (4xxx)
    SOURCE_UNAVAILABLE = "SOURCE_UNAVAILABLE"

    # Persistence Errors (5xxx)
    PERSISTENCE_READ_FAILED = "PERSISTENCE_READ_FAILED"
    PERSISTENCE_WRITE_FAILED = "PERSISTENCE_WRITE_FAILED"


class QuoteCalcError(Exception):
    """Base exception for quote calculator errors.

    Provides structured error information for the rendering layer.

    Attributes:
        code: Error code from ErrorCode constants
        message: Human-readable error message
        details: Additional error context
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        """Initialize QuoteCalcError.

        Args:
            code: Error code from ErrorCode constants
            message: Human-readable error message
            details: Additional error context
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for display.

        Returns:
            Dictionary with code, message, and details.
        """
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }

    def __repr__(self) -> str:
        return f"QuoteCalcError(code={self.code!r}, message={self.message!r})"


class UnusableSchemaError(QuoteCalcError):
    """Raised when a job type has no fields and cannot produce items."""

    def __init__(self, job_type_id: str, details: Optional[Dict] = None):
        super().__init__(
            code=ErrorCode.UNUSABLE_SCHEMA,
            message=(
                "This Job Type has no fields. Check the job fields source "
                "(job_type_id, job_type_name, key, label, type, min, step, default)."
            ),
            details={**(details or {}), "job_type_id": job_type_id}
        )
        self.job_type_id = job_type_id


class NotFoundError(QuoteCalcError):
    """Lookup of a quotation or item by id failed."""

    def __init__(self, code: str, entity_id: str, details: Optional[Dict] = None):
        kind = "Item" if code == ErrorCode.ITEM_NOT_FOUND else "Quotation"
        super().__init__(
            code=code,
            message=f"{kind} not found: {entity_id}",
            details={**(details or {}), "id": entity_id}
        )
        self.entity_id = entity_id


class SourceUnavailableError(QuoteCalcError):
    """Tabular source could not be fetched or read."""

    def __init__(self, message: str, location: str, details: Optional[Dict] = None):
        super().__init__(
            code=ErrorCode.SOURCE_UNAVAILABLE,
            message=message,
            details={**(details or {}), "location": location}
        )
        self.location = location


class PersistenceError(QuoteCalcError):
    """Snapshot store read/write failure."""

    def __init__(self, code: str, message: str, path: Optional[str] = None, details: Optional[Dict] = None):
        super().__init__(
            code=code,
            message=message,
            details={**(details or {}), "path": path} if path else details
        )
        self.path = path
