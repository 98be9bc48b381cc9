"""
Auth Errors
===========
Error taxonomy for the login orchestrator and the messages shown to users.

ValidationError   local, pre-network, attributed to a form field
CredentialError   backend rejected the credential; message surfaced verbatim
ChallengeExpired  OTP window elapsed; an explicit resend is required
TransportError    network or malformed response; generic message, logged

Nothing here is fatal: every failure leaves the login surface retryable.
"""

from typing import Any, Optional

import structlog

from .logging import log_error

logger = structlog.get_logger(__name__)


# Shown for transport failures; the technical detail only goes to the logs.
GENERIC_FAILURE_MESSAGE = "Could not reach the server. Please check your connection and try again."


class AuthError(Exception):
    """Base exception for all login orchestration errors."""

    default_message = "Authentication failed"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None, details: Any = None):
        self.message = message or self.default_message
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


# Validation (local, never reaches the network)

class ValidationError(AuthError):
    """Raised when a form field fails local validation."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)


class InvalidPhoneFormat(ValidationError):
    """Raised when a phone number does not match the channel's format."""

    def __init__(self, message: str, field: str = "phone"):
        super().__init__(field, message)


class InvalidHandle(ValidationError):
    """Raised when a handle breaks the character or length rule."""

    def __init__(self, message: str, field: str = "username"):
        super().__init__(field, message)


class PasswordMismatch(ValidationError):
    """Raised when the password confirmation differs."""

    def __init__(self, message: str = "Passwords do not match.", field: str = "confirmPassword"):
        super().__init__(field, message)


# Credential (backend said no)

class CredentialError(AuthError):
    """Raised when the backend rejects a phone, password, code or token."""
    default_message = "Invalid credentials"


class CodeMismatch(CredentialError):
    """Raised when the backend rejects a verification code."""
    default_message = "The verification code is incorrect."


class HandleTaken(CredentialError):
    """Raised when the chosen handle already belongs to another account."""
    default_message = "That username is already taken."


# Verification challenge lifecycle

class ChallengeExpired(AuthError):
    """Raised when verifying after the validity window has elapsed."""
    default_message = "The verification code has expired. Please request a new one."


class ChallengeNotFound(AuthError):
    """Raised when there is no live challenge to verify or resend."""
    default_message = "Request a verification code first."


# Transport

class TransportError(AuthError):
    """Raised when the backend or provider cannot be reached or answers garbage."""
    default_message = GENERIC_FAILURE_MESSAGE


class BackendUnreachable(TransportError):
    """Raised on connection failures and timeouts."""


class BackendError(TransportError):
    """Raised when the backend answers with a 5xx."""


class MalformedResponse(TransportError):
    """Raised when a 2xx response cannot be parsed."""


class TokenExchangeFailed(TransportError):
    """Raised when the identity provider does not return an access token."""


# State guards

class IllegalTransition(AuthError):
    """Raised when a flow is driven out of order."""


class OperationInFlight(AuthError):
    """Raised when an operation is submitted while the previous one is pending."""
    default_message = "Please wait, the previous request is still in progress."


def user_message(exc: Exception) -> str:
    """
    Map an error to the text shown on the login surface.

    Validation and credential messages pass through verbatim; transport
    failures collapse to a generic message.
    """
    if isinstance(exc, TransportError):
        logger.warning(
            "transport_failure_masked",
            error_type=type(exc).__name__,
            status_code=exc.status_code,
            detail=exc.message,
        )
        return GENERIC_FAILURE_MESSAGE
    if isinstance(exc, AuthError):
        return exc.message
    log_error(exc, context="unexpected_error_masked")
    return GENERIC_FAILURE_MESSAGE
