"""
Domain exceptions for the inventory API.

Raise these from core/ and adapters/ instead of HTTPException; main.py maps
them to HTTP responses in one place:

    ValidationError      -> 400
    AuthenticationError  -> 401
    NotFoundError        -> 404
    ConflictError        -> 409
    UpstreamQueryError   -> 502
"""
from typing import Any, Dict, Optional


class InventoryError(Exception):
    """Base exception for all inventory errors."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(InventoryError):
    """Invalid selector or parameter, detected before any backend call."""

    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class AuthenticationError(InventoryError):
    """No valid owner identity on the request."""

    status_code = 401

    def __init__(self, message: str = "Não autenticado"):
        super().__init__(message, code="AUTH_FAILED")


class NotFoundError(InventoryError):
    status_code = 404

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            f"{resource} not found: {resource_id}",
            code="NOT_FOUND",
            details={"resource": resource, "id": resource_id},
        )


class ConflictError(InventoryError):
    """The write would break a cross-reference (e.g. orphan child rows)."""

    status_code = 409

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="CONFLICT", details=details)


class UpstreamQueryError(InventoryError):
    """A read against the datastore failed. Never retried automatically."""

    status_code = 502

    def __init__(self, message: str, operation: Optional[str] = None):
        details = {"operation": operation} if operation else None
        super().__init__(message, code="UPSTREAM_QUERY_FAILED", details=details)
