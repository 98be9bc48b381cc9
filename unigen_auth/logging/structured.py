"""
Structured Logging
==================

structlog configuration shared by every login flow.

Usage:
    from unigen_auth.logging import setup_logging, bind_flow

    setup_logging(service_name="unigen-web", json_output=False)

    flow_id = bind_flow("senior")
    logger.info("otp.sent", phone=mask_phone(phone))

Every event carries the service name and, while a login flow is bound, its
``flow_id`` and ``login_mode``. Tokens, passwords and codes are never logged.
"""

import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Any, Optional

import structlog

service_name_var: ContextVar[str] = ContextVar("service_name", default="unigen-auth")


def _add_service(logger, method_name: str, event_dict: dict) -> dict:
    event_dict.setdefault("service", service_name_var.get())
    return event_dict


# =============================================================================
# Setup Functions
# =============================================================================

def setup_logging(
    service_name: str = "unigen-auth",
    level: str = "INFO",
    json_output: bool = True,
) -> logging.Logger:
    """
    Configure structlog and the stdlib root logger.

    Args:
        service_name: Name attached to every event
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: JSON lines for production, coloured console otherwise

    Returns:
        Configured root logger
    """
    service_name_var.set(service_name)
    log_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _add_service,
    ]

    structlog.configure(
        processors=shared_processors + [
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    structlog.get_logger("unigen_auth").info("logging.configured", json_output=json_output)
    return root_logger


def get_logger(name: str):
    """Get a structlog logger with the given name."""
    return structlog.get_logger(name)


# =============================================================================
# Flow Context
# =============================================================================

def bind_flow(mode: str, flow_id: Optional[str] = None) -> str:
    """
    Bind a login flow to the current context.

    Returns:
        The flow id, generated when not supplied
    """
    flow_id = flow_id or uuid.uuid4().hex[:12]
    structlog.contextvars.bind_contextvars(flow_id=flow_id, login_mode=mode)
    return flow_id


def clear_flow() -> None:
    """Drop the flow binding from the current context."""
    structlog.contextvars.unbind_contextvars("flow_id", "login_mode")


# =============================================================================
# Logging Functions
# =============================================================================

def mask_phone(phone: Optional[str]) -> str:
    """Mask a phone number for logs, keeping the prefix and last four digits."""
    if not phone:
        return ""
    digits = "".join(ch for ch in phone if ch.isdigit())
    if len(digits) <= 4:
        return "*" * len(digits)
    if len(digits) <= 7:
        return "*" * (len(digits) - 4) + digits[-4:]
    return digits[:3] + "*" * (len(digits) - 7) + digits[-4:]


def log_event(event_type: str, level: str = "info", **kwargs: Any) -> None:
    """
    Log a structured auth event.

    Args:
        event_type: Type of event (e.g., "otp.sent", "session.persisted")
        level: Log level name
        **kwargs: Additional event data
    """
    logger = structlog.get_logger("unigen_auth.events")
    getattr(logger, level.lower(), logger.info)(event_type, **kwargs)


def log_error(error: Exception, context: Optional[str] = None, **kwargs: Any) -> None:
    """
    Log an error with its type and context.

    Args:
        error: The exception
        context: Description of what was happening
        **kwargs: Additional context
    """
    logger = structlog.get_logger("unigen_auth.errors")
    logger.error(
        context or type(error).__name__,
        error_type=type(error).__name__,
        error_message=str(error),
        exc_info=error,
        **kwargs,
    )
