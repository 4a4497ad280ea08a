"""structlog setup for processes embedding the capture pipeline."""

import logging

import structlog


def configure_logging(level: str = "INFO", log_format: str = "console") -> None:
    """
    Configure structlog output.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ...)
        log_format: "console" for dev output, "json" for log shippers
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    if log_format.lower() == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        cache_logger_on_first_use=False,
    )
