"""Structured logging configuration using structlog."""

import logging
import os
import sys
from typing import Any

import structlog

LOG_LEVEL_ENV = "PREDICTKIT_LOG_LEVEL"


def _stderr_logger(*args: Any) -> structlog.PrintLogger:
    # sys.stderr is looked up per logger so redirected streams are used
    return structlog.PrintLogger(file=sys.stderr)


def configure_logging(
    level: str | None = None,
    json_output: bool = False,
) -> None:
    """
    Configure structured logging for predictkit.

    Log lines go to stderr so that tables and predictions printed by the
    CLI stay on stdout.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). Falls back to the
            PREDICTKIT_LOG_LEVEL environment variable, then WARNING.
        json_output: If True, render events as JSON lines.
    """
    level = level or os.environ.get(LOG_LEVEL_ENV, "WARNING")
    log_level = getattr(logging, level.upper(), logging.WARNING)

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=log_level)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_output:
        processors: list[structlog.types.Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=_stderr_logger,
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger, typically named after the calling module."""
    return structlog.get_logger(name)


def log_context(**kwargs: Any) -> structlog.contextvars.bound_contextvars:
    """
    Bind context to every log event emitted inside the block.

    Example:
        with log_context(task="iris", learner="classif.lda"):
            log.info("Training learner")
    """
    return structlog.contextvars.bound_contextvars(**kwargs)
