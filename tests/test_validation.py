"""
Unit Tests for Input Validation
===============================
Handle rules and the two phone validators.
"""

import random
import string

import pytest

from unigen_auth.errors import InvalidHandle, InvalidPhoneFormat
from unigen_auth.validation import (
    is_sender_phone,
    is_strict_phone,
    require_valid_handle,
    strip_separators,
    validate_handle,
    validate_sender_phone,
    validate_strict_phone,
)
from unigen_auth.validation.handle import MSG_FORMAT, MSG_REQUIRED, MSG_TOO_LONG, MSG_TOO_SHORT

HANDLE_CHARS = string.ascii_letters + string.digits + "._"


class TestHandleValidation:
    """Tests for the username rule."""

    @pytest.mark.parametrize("length", [3, 4, 12, 29, 30])
    def test_allowed_characters_in_range_are_valid(self, length):
        """Any mix of the allowed class with length 3..30 passes."""
        rng = random.Random(length)
        for _ in range(50):
            handle = "".join(rng.choice(HANDLE_CHARS) for _ in range(length))
            assert validate_handle(handle).valid, handle

    def test_too_short(self):
        check = validate_handle("ab")

        assert not check.valid
        assert check.message == MSG_TOO_SHORT

    def test_too_long(self):
        check = validate_handle("a" * 31)

        assert not check.valid
        assert check.message == MSG_TOO_LONG

    @pytest.mark.parametrize("handle", [
        "!",
        "ab-",
        "jane kim",
        "jane@kim",
        "김철수",
        "valid_name" + "#" + "x" * 40,
    ])
    def test_foreign_character_is_format_error_at_any_length(self, handle):
        """The character class is checked before length."""
        check = validate_handle(handle)

        assert not check.valid
        assert check.message == MSG_FORMAT

    def test_empty_handle(self):
        assert validate_handle("").message == MSG_REQUIRED

    def test_require_valid_handle_raises(self):
        with pytest.raises(InvalidHandle) as exc_info:
            require_valid_handle("no spaces")

        assert exc_info.value.field == "username"
        assert exc_info.value.message == MSG_FORMAT

    def test_require_valid_handle_returns_handle(self):
        assert require_valid_handle("chulsoo_01") == "chulsoo_01"


class TestPhoneValidation:
    """Tests for sender (lenient) and strict phone validators."""

    def test_strip_separators(self):
        assert strip_separators("010-1234 5678") == "01012345678"
        assert strip_separators("(02) 123.4567") == "021234567"

    def test_sender_accepts_ten_or_more_digits(self):
        assert is_sender_phone("0212345678")
        assert is_sender_phone("010-9999-8888")

    def test_sender_rejects_short_or_non_digit(self):
        assert not is_sender_phone("123456789")
        assert not is_sender_phone("010-abc-5678")

    def test_strict_requires_010_and_eleven_digits(self):
        assert is_strict_phone("01012345678")
        assert is_strict_phone("010-1234-5678")
        assert not is_strict_phone("0111234567")
        assert not is_strict_phone("0101234567")
        assert not is_strict_phone("010123456789")

    def test_validate_sender_returns_digits(self):
        assert validate_sender_phone("010-9999-8888") == "01099998888"

    def test_validate_sender_empty(self):
        with pytest.raises(InvalidPhoneFormat) as exc_info:
            validate_sender_phone("")

        assert exc_info.value.field == "phone"

    def test_number_valid_for_sender_but_not_strict(self):
        """A landline passes the OTP sender but not the reset flow."""
        assert validate_sender_phone("0212345678") == "0212345678"
        with pytest.raises(InvalidPhoneFormat):
            validate_strict_phone("0212345678")
