"""
Input Validation
================
Local, pre-network checks for phone numbers and handles.
"""

from .phone import (
    strip_separators,
    is_sender_phone,
    is_strict_phone,
    validate_sender_phone,
    validate_strict_phone,
)
from .handle import HandleCheck, validate_handle, require_valid_handle

__all__ = [
    # Phone
    "strip_separators",
    "is_sender_phone",
    "is_strict_phone",
    "validate_sender_phone",
    "validate_strict_phone",
    # Handle
    "HandleCheck",
    "validate_handle",
    "require_valid_handle",
]
