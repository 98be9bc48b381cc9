"""
Deferred Signup Collector
=========================
Completes registration after a Kakao login finds no matching account.

The collector belongs to the login surface that spawned it, and the
resulting session always takes that surface's mode. Nothing in the draft
can change it.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from .errors import CredentialError, HandleTaken, IllegalTransition, ValidationError
from .http import BackendClient
from .models import Mode, ProfileHint, Session, SignupRequired
from .validation import require_valid_handle, validate_handle, validate_strict_phone
from .validation.phone import is_strict_phone

logger = structlog.get_logger(__name__)

FIELD_NAME = "name"
FIELD_HANDLE = "username"
FIELD_PHONE = "phone"

REQUIRED_MESSAGES = {
    FIELD_NAME: "Please enter your name.",
    FIELD_HANDLE: "Please enter a username.",
    FIELD_PHONE: "Please enter your phone number.",
}


@dataclass
class SignupDraft:
    """Profile fields still needed to finish registration."""
    provisional_display_name: str = ""
    chosen_handle: str = ""
    phone_number: str = ""


@dataclass(frozen=True)
class FieldCheck:
    """Live feedback for one field."""
    field: str
    valid: bool
    message: str = ""


class DeferredSignupCollector:
    """Collects, validates and submits the missing signup fields."""

    def __init__(self, client: BackendClient, mode: Mode, pending: SignupRequired):
        self.client = client
        self.mode = mode
        self._pending: Optional[SignupRequired] = pending
        self.draft: Optional[SignupDraft] = None

    @property
    def is_open(self) -> bool:
        return self._pending is not None

    def open(self, hint: Optional[ProfileHint] = None) -> SignupDraft:
        """Start a draft pre-filled from the provider's profile hint."""
        if self._pending is None:
            raise IllegalTransition("Signup was already completed or cancelled")
        hint = hint or self._pending.hint
        self.draft = SignupDraft(provisional_display_name=hint.display_name)
        return self.draft

    def check_field(self, field: str, value: str) -> FieldCheck:
        """
        Keystroke validation. An empty value clears the message rather than
        nagging while the user is still typing.
        """
        if not value:
            return FieldCheck(field, valid=False)
        if field == FIELD_HANDLE:
            check = validate_handle(value)
            return FieldCheck(field, check.valid, check.message)
        if field == FIELD_PHONE:
            if is_strict_phone(value):
                return FieldCheck(field, True)
            return FieldCheck(
                field, False, "Enter an 11-digit number starting with 010 (e.g. 01012341234)."
            )
        return FieldCheck(field, True)

    def validate(self, draft: SignupDraft) -> SignupDraft:
        """
        Submission-time validation; all fields are mandatory.

        Raises:
            ValidationError: the first offending field
        """
        values = {
            FIELD_NAME: (draft.provisional_display_name or "").strip(),
            FIELD_HANDLE: (draft.chosen_handle or "").strip(),
            FIELD_PHONE: (draft.phone_number or "").strip(),
        }
        for field, value in values.items():
            if not value:
                raise ValidationError(field, REQUIRED_MESSAGES[field])

        handle = require_valid_handle(values[FIELD_HANDLE])
        phone = validate_strict_phone(values[FIELD_PHONE])
        return SignupDraft(
            provisional_display_name=values[FIELD_NAME],
            chosen_handle=handle,
            phone_number=phone,
        )

    async def submit(self, draft: SignupDraft) -> Session:
        """
        Validate locally, then register with the pending Kakao token.

        Raises:
            IllegalTransition: the collector was closed
            ValidationError: a field failed local validation (no request made)
            HandleTaken: the backend reports the username in use
            CredentialError / TransportError: any other backend failure
        """
        if self._pending is None:
            raise IllegalTransition("Signup was already completed or cancelled")
        clean = self.validate(draft)

        try:
            payload = await self.client.kakao_signup(
                self.mode,
                access_token=self._pending.access_token,
                username=clean.chosen_handle,
                phone=clean.phone_number,
                name=clean.provisional_display_name,
            )
        except CredentialError as exc:
            if exc.status_code == 409:
                raise HandleTaken(exc.message, status_code=exc.status_code) from exc
            raise

        session = payload.to_session(self.mode)
        logger.info("deferred_signup_completed", mode=self.mode.value, subject_id=session.subject_id)
        self._close()
        return session

    def cancel(self) -> None:
        """Discard the draft together with the Kakao token."""
        logger.info("deferred_signup_cancelled", mode=self.mode.value)
        self._close()

    def _close(self) -> None:
        self._pending = None
        self.draft = None
