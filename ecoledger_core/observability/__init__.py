"""Observability package for logging."""

from ecoledger_core.observability.logging import (
    JsonFormatter,
    RequestContext,
    StructuredLogger,
    bind_request_context,
    configure_logging,
    current_request_context,
    get_logger,
)

__all__ = [
    "StructuredLogger",
    "JsonFormatter",
    "RequestContext",
    "bind_request_context",
    "current_request_context",
    "get_logger",
    "configure_logging",
]
