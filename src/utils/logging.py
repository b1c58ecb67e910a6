"""Structured logging configuration for the image client.

Uses structlog for structured, JSON-capable logging with request correlation.
"""

import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Iterator

import structlog

# Context variable for per-operation correlation
current_request_id: ContextVar[str | None] = ContextVar("current_request_id", default=None)


def add_request_id(_logger, _method_name, event_dict):
    """Structlog processor to inject request_id into all log events."""
    request_id = current_request_id.get()
    if request_id:
        event_dict["request_id"] = request_id
    return event_dict


def setup_logging(log_level: str = "INFO", json_output: bool = False) -> None:
    """Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_output: If True, output JSON logs. If False, use colored console output.
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_request_id,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # stdlib records (httpx, Pillow) go through the same renderer
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)
    root_logger.setLevel(getattr(logging, log_level.upper()))

    # Suppress noisy third-party loggers
    noisy_loggers = [
        "httpx",
        "httpcore",
        "PIL",
        "PIL.PngImagePlugin",
    ]
    for logger_name in noisy_loggers:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Bound structlog logger
    """
    return structlog.get_logger(name)


def set_request_context(request_id: str | None = None) -> Token:
    """Set the current request ID for log correlation.

    Args:
        request_id: ID to use; a short random one is generated when omitted

    Returns:
        Token for ``reset_request_context``, restoring whatever ID was set before
    """
    return current_request_id.set(request_id or uuid.uuid4().hex[:12])


def reset_request_context(token: Token) -> None:
    """Restore the request ID that was in effect before ``token`` was issued."""
    current_request_id.reset(token)


@contextmanager
def request_context(request_id: str | None = None, **bindings) -> Iterator[str]:
    """Scope a request ID and extra log fields to a block.

    Example usage:
        with request_context(operation="edit") as request_id:
            logger.info("image_operation_started")   # carries request_id, operation

    Yields:
        The request ID in effect inside the block
    """
    token = set_request_context(request_id)
    try:
        with structlog.contextvars.bound_contextvars(**bindings):
            yield current_request_id.get()
    finally:
        reset_request_context(token)
