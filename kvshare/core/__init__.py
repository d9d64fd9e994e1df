"""Core configuration, logging, errors, and telemetry."""

from kvshare.core.config import Settings, get_settings
from kvshare.core.errors import (
    BackendError,
    ConfigurationError,
    ForbiddenError,
    KVShareError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from kvshare.core.logging import configure_logging, structured_log
from kvshare.core.telemetry import (
    get_metrics,
    get_trace_context,
    get_tracer,
    init_telemetry,
    instrument_fastapi,
    span,
)

__all__ = [
    "Settings",
    "get_settings",
    "KVShareError",
    "ValidationError",
    "NotFoundError",
    "UnauthorizedError",
    "ForbiddenError",
    "BackendError",
    "ConfigurationError",
    "configure_logging",
    "structured_log",
    "init_telemetry",
    "instrument_fastapi",
    "get_tracer",
    "get_trace_context",
    "get_metrics",
    "span",
]
