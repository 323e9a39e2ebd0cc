"""structlog configuration for the server and CLI entry points."""

from __future__ import annotations

import logging

import structlog


def configure_logging(level: str = "info", json_logs: bool = False) -> None:
    """Configure structlog once, at process start.

    Library modules only call ``structlog.get_logger(__name__)``; rendering
    and filtering are decided here.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    processors: list[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if json_logs:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        # ConsoleRenderer formats exceptions itself
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=False,
    )
