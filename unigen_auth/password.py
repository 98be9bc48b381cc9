"""
Password Change and Recovery
============================
Self-service password change and the phone-verified recovery flow.

Recovery mode carries ``phone`` and ``code`` instead of the current
password, so the same-password rule only applies outside recovery.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

import structlog

from .errors import IllegalTransition, PasswordMismatch, ValidationError
from .http import BackendClient
from .logging import mask_phone
from .validation import validate_strict_phone

logger = structlog.get_logger(__name__)

MIN_PASSWORD_LENGTH = 4


@dataclass
class ChangePasswordForm:
    """Fields of the change-password screen."""
    new_password: str
    confirm_password: str
    current_password: Optional[str] = None
    phone: Optional[str] = None
    code: Optional[str] = None

    @property
    def is_recovery(self) -> bool:
        return bool(self.phone and self.code)

    def validate(self) -> None:
        """
        Raises:
            ValidationError: too short, or same as current outside recovery
            PasswordMismatch: confirmation differs
        """
        if len(self.new_password or "") < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                "newPassword", f"Passwords must be at least {MIN_PASSWORD_LENGTH} characters."
            )
        if self.new_password != self.confirm_password:
            raise PasswordMismatch()
        if not self.is_recovery:
            if not self.current_password:
                raise ValidationError("currentPassword", "Please enter your current password.")
            if self.new_password == self.current_password:
                raise ValidationError(
                    "newPassword", "The new password must differ from the current one."
                )

    def to_payload(self) -> Dict[str, str]:
        if self.is_recovery:
            return {"phone": self.phone, "code": self.code, "newPassword": self.new_password}
        return {"currentPassword": self.current_password, "newPassword": self.new_password}


async def change_password(
    client: BackendClient,
    form: ChangePasswordForm,
    token: Optional[str] = None,
) -> None:
    """
    Validate locally, then submit the change.

    ``token`` authenticates a logged-in change; recovery needs none.
    """
    form.validate()
    await client.change_password(form.to_payload(), token=None if form.is_recovery else token)
    logger.info("password_changed", recovery=form.is_recovery)


class RecoveryStep(str, Enum):
    INPUT_PHONE = "input_phone"
    INPUT_CODE = "input_code"
    RESET = "reset"
    DONE = "done"


class PasswordRecoveryFlow:
    """Forgot-password: send code, verify it, set a new password."""

    CODE_TYPE = "password_reset"

    def __init__(self, client: BackendClient):
        self.client = client
        self.step = RecoveryStep.INPUT_PHONE
        self.phone: Optional[str] = None
        self.code: Optional[str] = None

    async def send_code(self, phone: str) -> None:
        digits = validate_strict_phone(phone)
        await self.client.send_code(digits, code_type=self.CODE_TYPE)
        self.phone = digits
        self.code = None
        self.step = RecoveryStep.INPUT_CODE
        logger.info("password_recovery_code_sent", phone=mask_phone(digits))

    async def verify_code(self, code: str) -> None:
        if self.step is not RecoveryStep.INPUT_CODE:
            raise IllegalTransition("Request a verification code first")
        code = (code or "").strip()
        if not code:
            raise ValidationError("code", "Please enter the verification code.")
        await self.client.verify_code(self.phone, code)
        self.code = code
        self.step = RecoveryStep.RESET

    async def reset(self, new_password: str, confirm_password: str) -> None:
        if self.step is not RecoveryStep.RESET:
            raise IllegalTransition("Verify the code before choosing a new password")
        form = ChangePasswordForm(
            new_password=new_password,
            confirm_password=confirm_password,
            phone=self.phone,
            code=self.code,
        )
        await change_password(self.client, form)
        self.step = RecoveryStep.DONE
