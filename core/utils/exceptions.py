# Structured exception hierarchy for the Broker Radar API

from typing import Dict, Any, Optional
from datetime import datetime, timezone


class AppError(Exception):
    """Base exception for all Broker Radar specific errors.

    Every subclass carries the HTTP status it maps to at the request boundary.
    """

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None,
                 is_operational: bool = True, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.is_operational = is_operational
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc)

    @property
    def name(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, str]:
        """Client-facing error body"""
        return {"error": self.name, "message": self.message}


# Request validation
class ValidationError(AppError):
    """Malformed or missing request parameters"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.field = field


class NotFoundError(AppError):
    status_code = 404

    def __init__(self, resource: str, identifier: Optional[str] = None):
        if identifier:
            message = f"{resource} with identifier '{identifier}' not found"
        else:
            message = f"{resource} not found"
        super().__init__(message)
        self.resource = resource
        self.identifier = identifier


# Upstream provider
class UpstreamApiError(AppError):
    """Upstream provider returned a non-success status or could not be reached"""

    def __init__(self, message: str, status_code: int = 500,
                 original_error: Optional[BaseException] = None, **kwargs):
        super().__init__(message, status_code=status_code, **kwargs)
        self.original_error = original_error


# Replay guard
class NonceError(AppError):
    status_code = 422


class DuplicateNonceError(NonceError):
    """Nonce was already accepted inside its validity window"""

    def __init__(self, nonce: str):
        super().__init__(f"Nonce already used: {nonce}")
        self.nonce = nonce


class MissingNonceError(NonceError):
    """Nonce header absent or blank"""

    status_code = 400

    def __init__(self, message: str = "X-Nonce header is required"):
        super().__init__(message)


class RateLimitExceededError(AppError):
    status_code = 429

    def __init__(self, message: str = "Rate limit exceeded", retry_after: Optional[int] = None):
        super().__init__(message)
        self.retry_after = retry_after


def create_error_context(error: Exception, operation: str,
                         additional_context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Create structured error context for logging

    Args:
        error: The exception that occurred
        operation: The operation that failed
        additional_context: Additional context information

    Returns:
        Structured error context dictionary
    """
    context = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "operation": operation,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if isinstance(error, AppError):
        context["status_code"] = error.status_code
        context["operational"] = error.is_operational
        if error.details:
            context["error_details"] = error.details

        if isinstance(error, UpstreamApiError) and error.original_error is not None:
            context["original_error"] = repr(error.original_error)

        if isinstance(error, DuplicateNonceError):
            context["nonce"] = error.nonce

    if additional_context:
        context.update(additional_context)

    return context
