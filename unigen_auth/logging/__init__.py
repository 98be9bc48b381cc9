"""
Unigen Auth Logging Module

Structured logging for the login orchestrator.
"""

from .structured import (
    # Setup
    setup_logging,
    get_logger,

    # Flow context
    bind_flow,
    clear_flow,

    # Logging functions
    log_event,
    log_error,
    mask_phone,

    # Context
    service_name_var,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "bind_flow",
    "clear_flow",
    "log_event",
    "log_error",
    "mask_phone",
    "service_name_var",
]
