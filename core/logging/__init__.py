# Structured logging with multi-channel support
from typing import Optional, Dict, Any

import structlog

from core.config.settings import Settings
from .channels import LogChannel
from .correlation import RequestContext
from .enhanced_logging import (
    configure_enhanced_logging,
    get_enhanced_logger,
    get_channel_logger,
    get_logging_statistics,
    get_api_logger,
    get_audit_logger,
    get_storage_logger,
    get_error_logger,
    reset_logging,
)

# Global flag to prevent duplicate logging configuration
_logging_configured = False


def configure_logging(settings: Settings) -> None:
    """Configure the logging system once per process."""
    global _logging_configured

    if _logging_configured:
        return

    configure_enhanced_logging(settings)
    _logging_configured = True


def reset_logging_configuration() -> None:
    """Allow configure_logging to run again (used by tests and the CLI)."""
    global _logging_configured
    reset_logging()
    _logging_configured = False


def get_logger(name: str, component: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return get_enhanced_logger(name, component)


def get_statistics() -> Dict[str, Any]:
    """Get logging system statistics."""
    return get_logging_statistics()


# Channel-specific logger functions
def get_api_logger_safe(name: str) -> structlog.stdlib.BoundLogger:
    """Get an API logger safely."""
    try:
        return get_api_logger(name)
    except Exception:
        return get_enhanced_logger(name, "api")


def get_audit_logger_safe(name: str) -> structlog.stdlib.BoundLogger:
    """Get an audit logger safely."""
    try:
        return get_audit_logger(name)
    except Exception:
        return get_enhanced_logger(name, "audit")


def get_storage_logger_safe(name: str) -> structlog.stdlib.BoundLogger:
    """Get a storage logger safely."""
    try:
        return get_storage_logger(name)
    except Exception:
        return get_enhanced_logger(name, "storage")


def get_error_logger_safe(name: str) -> structlog.stdlib.BoundLogger:
    """Get an error logger safely."""
    try:
        return get_error_logger(name)
    except Exception:
        return get_enhanced_logger(name, "error")


__all__ = [
    "configure_logging",
    "reset_logging_configuration",
    "get_logger",
    "get_statistics",
    "get_channel_logger",
    "get_api_logger_safe",
    "get_audit_logger_safe",
    "get_storage_logger_safe",
    "get_error_logger_safe",
    "LogChannel",
    "RequestContext",
]
