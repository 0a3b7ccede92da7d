"""
Shared error handling for the Tasks service.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class ServiceException(Exception):
    """Base exception for Tasks service components."""

    status_code = 400

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_response(self, request_id: Optional[str] = None) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class ValidationError(ServiceException):
    """Validation-related errors."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details, status_code=400)


class MalformedInputError(ServiceException):
    """A cache key could not be derived from the request URL or identifier."""

    def __init__(self, message: str = "Malformed cache input", details: Optional[Dict[str, Any]] = None):
        super().__init__("MALFORMED_INPUT", message, details, status_code=400)


class CacheUnavailableError(ServiceException):
    """The key-value service failed (timeout, connectivity, serialization)."""

    def __init__(self, message: str = "Cache unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__("CACHE_UNAVAILABLE", message, details, status_code=503)


class UnderlyingOperationFailedError(ServiceException):
    """The record store reported a failure for the requested operation."""

    def __init__(
        self,
        code: str = "UNDERLYING_OPERATION_FAILED",
        message: str = "Operation failed",
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500,
    ):
        super().__init__(code, message, details, status_code=status_code)


class RecordNotFoundError(UnderlyingOperationFailedError):
    """Requested record does not exist."""

    def __init__(self, message: str = "Not Found", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND", message, details, status_code=404)


class RecordConflictError(UnderlyingOperationFailedError):
    """Record conflicts with existing state."""

    def __init__(self, message: str = "Conflict", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFLICT", message, details, status_code=409)
