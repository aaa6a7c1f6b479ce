"""
Structured logging for the ledger service.

Usage:
    from kitchen_ledger.core.logging import configure_logging, get_logger

    # In main.py (once at startup)
    configure_logging("kitchen-ledger", log_level="INFO")

    # In any module
    logger = get_logger(__name__)
    logger.info("sale_recorded", sale_id=12, dish_id=3)
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor

_configured = False


def configure_logging(service_name: str, log_level: str = "INFO", json_output: bool = True) -> None:
    """
    Configure structlog on top of the stdlib logging module.

    Idempotent: only the first call installs handlers.

    Args:
        service_name: Added to every log entry as ``service``.
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL.
        json_output: Render JSON lines instead of the colored console format.
    """
    global _configured
    if _configured:
        return

    level = getattr(logging, log_level.upper(), logging.INFO)

    def add_service_name(
        _logger: Any,
        _method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        event_dict["service"] = service_name
        return event_dict

    renderer: Processor = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )
    processors: list[Processor] = [
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        add_service_name,
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        renderer,
    ]

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # SQL echo is controlled by the engine, keep the library quiet otherwise.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
