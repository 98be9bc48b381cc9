"""
Phone Utilities
===============
Phone number normalization and the two channel-specific validators.

The senior OTP sender accepts anything with at least 10 digits once
separators are stripped. Password reset and self-service flows require a
Korean mobile number: exactly 11 digits starting with 010. Callers pick the
validator that matches their channel.
"""

import re

from ..errors import InvalidPhoneFormat

SENDER_MIN_DIGITS = 10
STRICT_PHONE_PATTERN = re.compile(r"^010\d{8}$")


def strip_separators(phone: str) -> str:
    """
    Remove spaces, dashes, dots and parentheses.

    Args:
        phone: Raw phone number as typed

    Returns:
        The phone number with separators removed
    """
    return re.sub(r"[\s\-().]", "", phone or "")


def is_sender_phone(phone: str) -> bool:
    """True if the number is acceptable to the senior OTP sender."""
    digits = strip_separators(phone)
    return digits.isdigit() and len(digits) >= SENDER_MIN_DIGITS


def is_strict_phone(phone: str) -> bool:
    """True if the number is an 11-digit 010 mobile number."""
    return bool(STRICT_PHONE_PATTERN.match(strip_separators(phone)))


def validate_sender_phone(phone: str) -> str:
    """
    Validate a number for the senior OTP sender.

    Returns:
        The digits-only phone number

    Raises:
        InvalidPhoneFormat: fewer than 10 digits, or non-digit characters
    """
    if not phone:
        raise InvalidPhoneFormat("Please enter your phone number.")
    if not is_sender_phone(phone):
        raise InvalidPhoneFormat("Please enter a valid phone number.")
    return strip_separators(phone)


def validate_strict_phone(phone: str) -> str:
    """
    Validate a number for password reset and signup completion.

    Returns:
        The 11-digit phone number

    Raises:
        InvalidPhoneFormat: anything but 010 followed by eight digits
    """
    if not phone:
        raise InvalidPhoneFormat("Please enter your phone number.")
    if not is_strict_phone(phone):
        raise InvalidPhoneFormat(
            "Enter an 11-digit number starting with 010 (e.g. 01012341234)."
        )
    return strip_separators(phone)
