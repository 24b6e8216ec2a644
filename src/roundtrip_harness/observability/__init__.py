"""Public observability primitives: structured logging and correlation context."""

from roundtrip_harness.observability.logging import (
    LOGGER_NAME,
    configure_logging,
    correlation_scope,
    get_correlation_context,
    reset_correlation_fields,
    set_correlation_fields,
)

__all__ = [
    "LOGGER_NAME",
    "configure_logging",
    "correlation_scope",
    "get_correlation_context",
    "reset_correlation_fields",
    "set_correlation_fields",
]
