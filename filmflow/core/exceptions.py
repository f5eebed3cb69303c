"""
Filmflow Exception Hierarchy

Structured exception classes for the inventory and order-readiness engine.
All exceptions include code, message, and details for audit trail and
debugging, plus the HTTP status the API layer renders them with.

Exception Hierarchy:
    FilmflowError
    ├── ValidationError          400
    ├── InsufficientStockError   400
    ├── PermissionDeniedError    403
    ├── NotFoundError            404
    ├── ConflictError            409
    ├── StoreError               500
    └── InternalError            500
"""
import logging
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)


class FilmflowError(Exception):
    """
    Base exception for all Filmflow custom errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code for programmatic handling
        details: Additional context for debugging/audit
        severity: P0-P3 severity level
    """

    default_code: str = "FILMFLOW_ERROR"
    default_severity: str = "P2"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[str] = None,
    ):
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        self.severity = severity or self.default_severity
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "severity": self.severity,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class ValidationError(FilmflowError):
    """Malformed or out-of-range input. Never retried."""
    default_code = "VALIDATION_ERROR"
    default_severity = "P3"
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        super().__init__(message, details=details, **kwargs)


class InsufficientStockError(FilmflowError):
    """Snapshot shows less kg on hand than requested."""
    default_code = "INSUFFICIENT_STOCK"
    default_severity = "P3"
    status_code = 400

    def __init__(
        self,
        message: str,
        stock_item_id: Optional[int] = None,
        requested_kg: Optional[float] = None,
        available_kg: Optional[float] = None,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        details.update({
            "stock_item_id": stock_item_id,
            "requested_kg": requested_kg,
            "available_kg": available_kg,
        })
        super().__init__(message, details=details, **kwargs)


class PermissionDeniedError(FilmflowError):
    """The authorization policy refused the action for this role."""
    default_code = "FORBIDDEN"
    default_severity = "P3"
    status_code = 403


class NotFoundError(FilmflowError):
    """Referenced plan/order/entry does not exist."""
    default_code = "NOT_FOUND"
    default_severity = "P3"
    status_code = 404

    def __init__(self, message: str, resource: Optional[str] = None, resource_id: Any = None, **kwargs):
        details = kwargs.pop("details", {})
        details.update({"resource": resource, "resource_id": resource_id})
        super().__init__(message, details=details, **kwargs)


class ConflictError(FilmflowError):
    """Optimistic concurrency check failed; the caller must resubmit."""
    default_code = "STOCK_CONFLICT"
    default_severity = "P2"
    status_code = 409


class StoreError(FilmflowError):
    """The backing store failed or is unavailable."""
    default_code = "STORE_ERROR"
    default_severity = "P1"
    status_code = 500


class InternalError(FilmflowError):
    """
    Unexpected downstream failure after which the operation was rolled back.

    details["rolled_back"] lists the compensations that ran;
    details["rollback_failures"] lists the ones that failed themselves.
    """
    default_code = "INTERNAL_ERROR"
    default_severity = "P1"
    status_code = 500
