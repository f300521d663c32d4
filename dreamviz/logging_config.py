"""Structured logging configuration using structlog."""

from __future__ import annotations

import logging
import sys
import uuid
from contextlib import contextmanager
from typing import Iterator, Optional

import structlog

from dreamviz.config import Settings, get_settings


def setup_logging(settings: Optional[Settings] = None) -> None:
    """Configure structured logging for the entire application."""
    settings = settings or get_settings()
    log_level = getattr(logging, settings.dreamviz_log_level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer() if settings.dreamviz_env == "production"
            else structlog.dev.ConsoleRenderer(colors=True),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a named structured logger."""
    return structlog.get_logger(name)


@contextmanager
def run_context(run_id: Optional[str] = None) -> Iterator[str]:
    """Tag every event logged inside the block with ``run_id``.

    The id lives in structlog's contextvars, so events from the speech,
    prompt and video modules carry it too. Concurrent runs in separate
    tasks keep separate ids.
    """
    run_id = run_id or uuid.uuid4().hex[:8]
    with structlog.contextvars.bound_contextvars(run_id=run_id):
        yield run_id
