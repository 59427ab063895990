"""Structured logging configuration for rgwpolicy.

The library itself only emits events through ``structlog.get_logger``;
nothing is configured on import. Host processes (the provider plugin, test
harnesses, scripts) call :func:`configure_logging` once at startup.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog


def configure_logging() -> None:
    """Configure structured logging.

    Sets up:
    - JSON output (or a console renderer when LOG_FORMAT=console)
    - ISO timestamp format
    - Log level filtering (INFO by default, configurable via LOG_LEVEL env var)
    - Exception formatting

    Output goes to stderr; plugin protocols may own stdout.
    """
    log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
    log_format = os.environ.get("LOG_FORMAT", "json").lower()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level, logging.INFO),
    )

    renderer: Any
    if log_format == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger instance.

    Example:
        logger = get_logger(__name__)
        logger.info("identifier_parsed", kind="role_policy")
    """
    return structlog.get_logger(name)


def mask_secret(value: str, visible_chars: int = 4) -> str:
    """Mask a secret (e.g. an S3 access key) for safe logging.

    Returns:
        Masked string such as "AKIA...XY12", or "***" for short values
    """
    if len(value) <= visible_chars * 2:
        return "***"
    return f"{value[:visible_chars]}...{value[-visible_chars:]}"
