"""
Per-request context for log correlation.
The request id set here is stamped onto every log event emitted while the request is handled.
"""

import uuid
import contextvars
from typing import Optional, Dict, Any

_request_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'request_id', default=None
)

# Additional fields bound for the lifetime of the request (path, method, ip)
_request_context: contextvars.ContextVar[Dict[str, Any]] = contextvars.ContextVar(
    'request_context', default={}
)


class RequestContext:
    """Manager for request id lifecycle and context propagation"""

    @staticmethod
    def generate_request_id() -> str:
        return str(uuid.uuid4())

    @staticmethod
    def set_request_id(request_id: str) -> str:
        """
        Set the request id for the current context.

        Args:
            request_id: Request id to set

        Returns:
            The request id that was set
        """
        _request_id.set(request_id)
        return request_id

    @staticmethod
    def get_request_id() -> Optional[str]:
        return _request_id.get()

    @staticmethod
    def ensure_request_id() -> str:
        """Return the current request id, generating one if needed."""
        current_id = _request_id.get()
        if current_id is None:
            current_id = RequestContext.generate_request_id()
            _request_id.set(current_id)
        return current_id

    @staticmethod
    def bind(**kwargs) -> Dict[str, Any]:
        """Add key-value pairs to the request context and return the result."""
        current_context = _request_context.get().copy()
        current_context.update(kwargs)
        _request_context.set(current_context)
        return current_context

    @staticmethod
    def get_context() -> Dict[str, Any]:
        return _request_context.get().copy()

    @staticmethod
    def clear() -> None:
        """Clear request id and context from current context"""
        _request_id.set(None)
        _request_context.set({})
