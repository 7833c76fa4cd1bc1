"""Structured logging setup."""

from thaiinfo.observability.logging import (
    bind_operation_context,
    clear_operation_context,
    configure_logging,
    get_logger,
)


__all__ = [
    "bind_operation_context",
    "clear_operation_context",
    "configure_logging",
    "get_logger",
]
