"""Structured logging setup.

Log events go to stderr as JSON lines so that stdout carries only the report a
command prints for the user.

Usage:
    from blast_jobs.log import get_logger

    logger = get_logger(__name__)
    logger.info("job_finalized", job_id=job_id, state="ready")
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog


def configure_logging(level: str = "WARNING") -> None:
    """Configure structlog for one CLI invocation.

    Loggers are not cached so that a reconfiguration (or a swapped stderr in
    tests) takes effect for module-level loggers too.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level.upper(), logging.WARNING)),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> Any:
    return structlog.get_logger(name)
