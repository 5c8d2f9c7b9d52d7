# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Structured logging configuration using structlog.

Engine modules log through ``logging.getLogger(__name__)``. A host
application calls :func:`setup_logging` once; after that both those
standard-library records and structlog loggers from :func:`get_logger`
go through the same processor chain and are rendered as JSON in
production or as colored console output in development.

Example:
    >>> from examrecall.utils.logging import setup_logging, bind_context
    >>> from examrecall.core.config import get_settings
    >>> setup_logging(get_settings())
    >>> bind_context(deck_id="deck-1")
"""

import logging
import sys
from typing import TYPE_CHECKING, TextIO

import structlog
from structlog.types import Processor

if TYPE_CHECKING:
    from examrecall.core.config.settings import Settings

HANDLER_NAME = "examrecall"


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderers(settings: "Settings") -> list[Processor]:
    if settings.is_development or settings.debug:
        return [structlog.dev.ConsoleRenderer(colors=True)]
    return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]


def setup_logging(settings: "Settings", stream: TextIO | None = None) -> logging.Handler:
    """Route engine log records through structlog.

    Calling it again replaces the handler installed by the previous call.

    Args:
        settings: Application settings containing log_level and debug flag.
        stream: Output stream; defaults to stdout.

    Returns:
        The handler installed on the root logger.
    """
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    shared_processors = _shared_processors()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *_renderers(settings),
            ],
        )
    )

    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == HANDLER_NAME:
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(log_level)

    logging.getLogger("examrecall").setLevel(log_level)
    return handler


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger for the given module name."""
    return structlog.get_logger(name)


def bind_context(**kwargs: object) -> None:
    """Bind context variables to all subsequent log calls in this context.

    Useful for session-scoped information like deck_id or session id.
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables at the end of a review session."""
    structlog.contextvars.clear_contextvars()
