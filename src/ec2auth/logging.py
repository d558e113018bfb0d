"""Structured logging configuration and HTTP traffic logging.

This module configures structlog over the standard library logger and provides
the direction-prefixed traffic logger used by the instrumented transport.
"""

import logging
import sys
from typing import Any, TextIO

import structlog
from structlog.types import EventDict, Processor

from ec2auth.constants import MASK, LogPrefix

_SENSITIVE_KEYS = {"password", "secret", "access_key", "token_id", "signature"}


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add application context to all log entries."""
    event_dict["app"] = "ec2auth"
    return event_dict


def mask_sensitive_data(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Mask sensitive fields in log entries.

    Fields like 'password', 'secret' or 'signature' will be masked with '***'.
    """
    for key in event_dict:
        if any(sensitive in key.lower() for sensitive in _SENSITIVE_KEYS):
            event_dict[key] = MASK

    return event_dict


def configure_logging(
    debug: bool = False,
    log_format: str = "console",
    stream: TextIO | None = None,
) -> None:
    """Configure structured logging for the command line tool.

    - console: Human-readable output
    - json: JSON lines for log aggregation

    Everything goes to stderr so that stdout only carries the issued token.

    Args:
        debug: Enable DEBUG level
        log_format: Renderer to use ("console" or "json")
        stream: Output stream (default: sys.stderr)
    """
    log_level = logging.DEBUG if debug else logging.INFO

    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stderr,
        level=log_level,
        force=True,
    )

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_app_context,
        mask_sensitive_data,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        processors = [*shared_processors, structlog.processors.JSONRenderer()]
    else:
        colors = (stream or sys.stderr).isatty()
        processors = [*shared_processors, structlog.dev.ConsoleRenderer(colors=colors)]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a configured structured logger.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Structured logger instance

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("authentication_succeeded", username="alice")
    """
    return structlog.get_logger(name)


class HttpTrafficLogger:
    """Logs HTTP traffic one line at a time with a direction prefix.

    Multi-line messages (headers, pretty-printed bodies) are split so that
    every emitted line starts with "->" for outgoing or "<-" for incoming data.
    """

    def __init__(self, logger: Any | None = None) -> None:
        self.logger = logger or get_logger("ec2auth.http")

    def request(self, message: str) -> None:
        """Log an outgoing message."""
        self._emit(LogPrefix.REQUEST, message, "request", logging.INFO)

    def response(self, message: str) -> None:
        """Log an incoming message."""
        self._emit(LogPrefix.RESPONSE, message, "response", logging.INFO)

    def request_warning(self, message: str) -> None:
        """Log an outgoing problem (e.g. a body that failed to parse)."""
        self._emit(LogPrefix.REQUEST, message, "request", logging.WARNING)

    def response_warning(self, message: str) -> None:
        """Log an incoming problem."""
        self._emit(LogPrefix.RESPONSE, message, "response", logging.WARNING)

    def _emit(self, prefix: str, message: str, direction: str, level: int) -> None:
        for line in message.split("\n"):
            self.logger.log(level, f"{prefix} {line}", direction=direction)
