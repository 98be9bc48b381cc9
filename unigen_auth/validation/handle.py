"""
Handle Validation
=================
Username rules, checked on every keystroke and again on submit.
"""

import re
from dataclasses import dataclass

from ..errors import InvalidHandle

HANDLE_PATTERN = re.compile(r"^[A-Za-z0-9._]+$")
HANDLE_MIN_LENGTH = 3
HANDLE_MAX_LENGTH = 30

MSG_REQUIRED = "Please enter a username."
MSG_FORMAT = "Usernames may only contain letters, numbers, underscores (_) and periods (.)."
MSG_TOO_SHORT = f"Usernames must be at least {HANDLE_MIN_LENGTH} characters."
MSG_TOO_LONG = f"Usernames must be at most {HANDLE_MAX_LENGTH} characters."


@dataclass(frozen=True)
class HandleCheck:
    """Result of a handle check."""
    valid: bool
    message: str = ""


def validate_handle(handle: str) -> HandleCheck:
    """
    Check a candidate handle.

    The character class is checked before length, so any foreign character
    yields the format message whatever the length.
    """
    if not handle or not isinstance(handle, str):
        return HandleCheck(False, MSG_REQUIRED)
    if not HANDLE_PATTERN.match(handle):
        return HandleCheck(False, MSG_FORMAT)
    if len(handle) < HANDLE_MIN_LENGTH:
        return HandleCheck(False, MSG_TOO_SHORT)
    if len(handle) > HANDLE_MAX_LENGTH:
        return HandleCheck(False, MSG_TOO_LONG)
    return HandleCheck(True)


def require_valid_handle(handle: str) -> str:
    """Return the handle or raise InvalidHandle with the check's message."""
    check = validate_handle(handle)
    if not check.valid:
        raise InvalidHandle(check.message)
    return handle
