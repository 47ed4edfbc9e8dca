"""structlog setup for the marketplace.

Development gets colored console output and production gets one JSON
object per line. Each entry carries the request_id that the API middleware
binds, so a single quote acceptance or escrow release can be followed
across services.

Money fields are rendered as plain strings, and gateway secrets never
reach the log stream.

Usage:
    from winnipeg_connect.logging_config import setup_logging, get_logger
    setup_logging(log_level="INFO", json_logs=True)
    logger = get_logger(__name__)
    logger.info("payment.released", payment_id="abc-123", net=Decimal("427.50"))
"""

from __future__ import annotations

import logging
import sys
from decimal import Decimal
from typing import Any

import structlog

SECRET_KEYS = frozenset({"client_secret", "stripe_secret_key", "api_key", "authorization"})
REDACTED = "***"

_NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "stripe", "aiosqlite", "httpx")


def redact_secrets(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for key in SECRET_KEYS.intersection(event_dict):
        if event_dict[key]:
            event_dict[key] = REDACTED
    return event_dict


def render_decimals(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Amounts log as "486.50" rather than Decimal('486.50')."""
    for key, value in event_dict.items():
        if isinstance(value, Decimal):
            event_dict[key] = f"{value:.2f}"
    return event_dict


def setup_logging(log_level: str = "DEBUG", json_logs: bool = False) -> None:
    """Route structlog and stdlib logging through one handler on stdout.

    Args:
        log_level: Level name such as DEBUG or WARNING. Unknown names fall back to DEBUG.
        json_logs: Emit JSON lines instead of the colored console renderer.
    """
    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_secrets,
        render_decimals,
        structlog.processors.StackInfoRenderer(),
    ]

    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=True)
    )

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, log_level.upper(), logging.DEBUG))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
