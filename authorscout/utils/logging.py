"""Structured logging configuration with structlog.

Logs go to stderr so that machine-readable command output (``results --json``)
stays alone on stdout.
"""

import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, TextIO

import structlog


def _renderer(environment: str) -> Any:
    if environment.lower() == "production":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def configure_logging(
    log_level: str = "INFO",
    environment: str | None = None,
    stream: TextIO | None = None,
) -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        environment: "production" renders JSON lines, anything else the console
            renderer. Read from ENVIRONMENT when None.
        stream: Destination for log lines (stderr when None)
    """
    stream = stream or sys.stderr
    level = getattr(logging, log_level.upper())
    environment = environment or os.getenv("ENVIRONMENT", "development")

    logging.basicConfig(format="%(message)s", stream=stream, level=level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            _renderer(environment),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=False,
    )


@contextmanager
def crawl_context(**values: Any) -> Iterator[None]:
    """Bind values (e.g. run_id) to every log line emitted inside the block."""
    with structlog.contextvars.bound_contextvars(**values):
        yield
