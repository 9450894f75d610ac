"""Structured logging setup using structlog."""

from __future__ import annotations

import logging
from typing import Any, Optional

import structlog

from cashmais.core.config import Settings, get_settings


_CONFIGURED = False


def _add_default_context(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    del logger, method_name
    event_dict.setdefault("request_id", None)
    event_dict.setdefault("realm", None)
    return event_dict


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Initialize structlog once for JSON-formatted logs."""

    global _CONFIGURED
    if _CONFIGURED:
        return

    settings = settings or get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    logging.basicConfig(level=level, format="%(message)s")

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _add_default_context,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.PrintLoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )

    _CONFIGURED = True


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    configure_logging()
    return structlog.get_logger(name)


def bind_request_context(request_id: str, realm: str | None = None) -> None:
    structlog.contextvars.bind_contextvars(request_id=request_id, realm=realm)


def bind_realm(realm: str) -> None:
    structlog.contextvars.bind_contextvars(realm=realm)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


def mask_token(token: str, visible: int = 8) -> str:
    if not token:
        return "none"
    return token[:visible] + "..."


def mask_document(value: str) -> str:
    """Mask a CPF/CNPJ down to its last four digits."""

    digits = "".join(ch for ch in value or "" if ch.isdigit())
    return f"***{digits[-4:]}" if digits else "***"
