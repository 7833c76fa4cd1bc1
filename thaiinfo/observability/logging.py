"""Structured logging configuration."""

import logging
import sys
from typing import TextIO

import structlog


def configure_logging(
    level: int = logging.INFO,
    output: TextIO = sys.stderr,
    json_format: bool = True,
) -> None:
    """Configure structlog for the portal core.

    JSON output is meant for the hosted backend, the console renderer for
    operators running the CLI by hand.

    Args:
        level: Logging level (default: INFO).
        output: Output stream (default: stderr).
        json_format: Whether to render JSON lines (default: True).
    """
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_format:
        processors.append(
            structlog.processors.JSONRenderer(sort_keys=True, ensure_ascii=False)
        )
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=output.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=output,
        level=level,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a bound logger instance.

    Args:
        name: Optional logger name.

    Returns:
        Bound logger instance.
    """
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger


def bind_operation_context(operation_id: str, operation: str) -> None:
    """Attach an operation id and name to every subsequent log line.

    Args:
        operation_id: Unique id for one CLI or request invocation.
        operation: Operation name, e.g. ``ingest_url``.
    """
    structlog.contextvars.bind_contextvars(
        operation_id=operation_id, operation=operation
    )


def clear_operation_context() -> None:
    """Remove the operation context from log lines."""
    structlog.contextvars.unbind_contextvars("operation_id", "operation")
