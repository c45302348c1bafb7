"""Observability helpers: structured logging and CloudWatch Embedded Metrics.

Import `init_observability` and call it once at process start.
"""
from __future__ import annotations

import logging
import os
from typing import Optional

import structlog
from aws_embedded_metrics import metric_scope
from aws_embedded_metrics.config import get_config

from settings import Settings, get_settings

__all__ = [
    "init_observability",
    "metric_scope",  # re-export for convenience
]


def _setup_logging() -> None:
    """Configure structlog for structured logging (JSON or console)."""

    log_format = os.getenv("LOG_FORMAT", "json").lower()
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        final_processor = structlog.processors.JSONRenderer()
    else:
        final_processor = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=shared_processors + [final_processor],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    # structlog renders the message; the handler only writes it out
    if not root_logger.handlers:
        root_logger.addHandler(logging.StreamHandler())
    root_logger.setLevel(log_level)

    # Access lines come from RequestIdMiddleware instead
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(logging.WARNING)


def _setup_metrics(settings: Settings) -> None:
    config = get_config()
    config.environment = settings.metrics_environment
    config.namespace = settings.metrics_namespace
    config.service_name = "job-board"


def init_observability(settings: Optional[Settings] = None) -> None:
    """Setup logging & metrics. Call once at process start."""

    _setup_logging()
    _setup_metrics(settings or get_settings())

    structlog.get_logger(__name__).info("Observability initialized")
