"""
Structured logging setup using structlog.
Outputs JSON-formatted logs by default, or human-readable console
output when LOG_FORMAT=console.
"""

import logging
import os
import sys

import structlog


def setup_logging():
    """
    Configure structlog once at application startup.

    Environment:
    - LOG_LEVEL: DEBUG, INFO (default), WARNING, ERROR
    - LOG_FORMAT: json (default) or console

    Usage:
        from sensor_switcher.utils.logging import get_logger
        log = get_logger(__name__)
        log.info("sensor_create_success", sensor_id=3, thermostat_id=1)
        log.error("sensor_activation_failed", sensor_device_id="S1", exc_info=True)
    """
    log_level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = getattr(logging, log_level_name, logging.INFO)

    # Route stdlib logging (uvicorn, sqlalchemy) to the same stream
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    if os.getenv("LOG_FORMAT", "json").lower() == "console":
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = None) -> structlog.BoundLogger:
    """
    Get a structlog logger, optionally bound to a module name.
    """
    if name:
        return structlog.get_logger(name)
    return structlog.get_logger()
