"""Structured logging configuration for restyle.

structlog is routed through stdlib logging via ProcessorFormatter, so host
integrations that use logging.getLogger(__name__) and restyle modules that
use structlog.get_logger() produce the same output (JSON or console).
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import ProcessorFormatter

# Loggers that are noisy at DEBUG and carry no replacement-run signal.
_NOISY_LOGGERS: tuple[str, ...] = (
    "asyncio",
    "tenacity",
)


def _remove_internal_fields(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Drop the bookkeeping keys ProcessorFormatter always adds."""
    del event_dict["_record"]
    del event_dict["_from_structlog"]
    return event_dict


def configure_logging(
    *,
    json_output: bool = False,
    level: str = "INFO",
) -> None:
    """Configure structlog and stdlib logging for restyle.

    Args:
        json_output: If True, output JSON lines. If False, human-readable console output.
        level: Log level name (DEBUG, INFO, WARNING, ERROR).
    """
    log_level = getattr(logging, level.upper())

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_output:
        final_processors: list[Any] = [
            _remove_internal_fields,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        final_processors = [
            _remove_internal_fields,
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ]

    structlog.configure(
        processors=[*shared_processors, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Reconfiguration in tests must not hand out stale loggers
        cache_logger_on_first_use=False,
    )

    # Logs go to stderr so CLI progress and summaries on stdout stay parseable
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        ProcessorFormatter(
            processors=final_processors,
            foreign_pre_chain=shared_processors,
        )
    )

    root = logging.getLogger()
    root.handlers = []
    root.addHandler(handler)
    root.setLevel(log_level)

    noisy_level = max(log_level, logging.WARNING)
    for logger_name in _NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(noisy_level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a bound logger for a module (typically ``__name__``)."""
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger


def bind_run_context(**values: Any) -> None:
    """Bind key/values (e.g. operation, checkpoint) onto every log line of the current run."""
    structlog.contextvars.bind_contextvars(**values)


def unbind_run_context(*keys: str) -> None:
    """Remove run-scoped keys bound with bind_run_context(), leaving caller context intact."""
    structlog.contextvars.unbind_contextvars(*keys)
