"""
Unit Tests for Password Change and Recovery
===========================================
"""

import pytest

from unigen_auth.errors import (
    CredentialError,
    IllegalTransition,
    InvalidPhoneFormat,
    PasswordMismatch,
    ValidationError,
)
from unigen_auth.password import ChangePasswordForm, PasswordRecoveryFlow, RecoveryStep, change_password


class TestChangePasswordForm:
    """Tests for local password rules."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("password", ["pw1234", "abcd", "same-password!"])
    async def test_same_password_rejected_before_network(self, client, backend, password):
        form = ChangePasswordForm(new_password=password, confirm_password=password, current_password=password)

        with pytest.raises(ValidationError) as exc_info:
            await change_password(client, form, token="n1")

        assert exc_info.value.field == "newPassword"
        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_recovery_skips_same_password_rule(self, client, backend):
        backend.on("POST", "/auth/change-password", body={"success": True})
        form = ChangePasswordForm(
            new_password="pw1234",
            confirm_password="pw1234",
            current_password="pw1234",
            phone="01011112222",
            code="123456",
        )

        await change_password(client, form)

        assert backend.body("/auth/change-password") == {
            "phone": "01011112222",
            "code": "123456",
            "newPassword": "pw1234",
        }
        assert "Authorization" not in backend.calls("/auth/change-password")[0].headers

    @pytest.mark.asyncio
    async def test_logged_in_change(self, client, backend):
        backend.on("POST", "/auth/change-password", body={"success": True})
        form = ChangePasswordForm(new_password="new-pw", confirm_password="new-pw", current_password="old-pw")

        await change_password(client, form, token="n1")

        assert backend.body("/auth/change-password") == {"currentPassword": "old-pw", "newPassword": "new-pw"}
        assert backend.calls("/auth/change-password")[0].headers["Authorization"] == "Bearer n1"

    def test_too_short(self):
        form = ChangePasswordForm(new_password="abc", confirm_password="abc", current_password="old-pw")

        with pytest.raises(ValidationError) as exc_info:
            form.validate()

        assert exc_info.value.field == "newPassword"

    def test_confirmation_must_match(self):
        form = ChangePasswordForm(new_password="new-pw", confirm_password="new-pW", current_password="old-pw")

        with pytest.raises(PasswordMismatch):
            form.validate()

    def test_current_password_required_outside_recovery(self):
        form = ChangePasswordForm(new_password="new-pw", confirm_password="new-pw")

        with pytest.raises(ValidationError) as exc_info:
            form.validate()

        assert exc_info.value.field == "currentPassword"


class TestPasswordRecoveryFlow:
    """Tests for forgot-password."""

    @pytest.fixture
    def flow(self, client, backend):
        backend.on("POST", "/senior/auth/send-code", body={"success": True})
        backend.on("POST", "/senior/auth/verify-code", body={"success": True})
        backend.on("POST", "/auth/change-password", body={"success": True})
        return PasswordRecoveryFlow(client)

    @pytest.mark.asyncio
    async def test_full_recovery(self, flow, backend):
        await flow.send_code("010-1111-2222")
        assert flow.step is RecoveryStep.INPUT_CODE
        assert backend.body("/senior/auth/send-code") == {"phone": "01011112222", "type": "password_reset"}

        await flow.verify_code("123456")
        assert flow.step is RecoveryStep.RESET
        assert backend.body("/senior/auth/verify-code") == {"phone": "01011112222", "code": "123456"}

        await flow.reset("new-pw", "new-pw")
        assert flow.step is RecoveryStep.DONE
        assert backend.body("/auth/change-password") == {
            "phone": "01011112222",
            "code": "123456",
            "newPassword": "new-pw",
        }

    @pytest.mark.asyncio
    async def test_strict_phone_required(self, flow, backend):
        with pytest.raises(InvalidPhoneFormat):
            await flow.send_code("0212345678")

        assert backend.requests == []

    @pytest.mark.asyncio
    async def test_out_of_order(self, flow):
        with pytest.raises(IllegalTransition):
            await flow.verify_code("123456")
        with pytest.raises(IllegalTransition):
            await flow.reset("new-pw", "new-pw")

    @pytest.mark.asyncio
    async def test_rejected_code_stays_on_code_step(self, flow, backend):
        backend.on("POST", "/senior/auth/verify-code", status=400, body={"message": "Invalid code"})
        await flow.send_code("01011112222")

        with pytest.raises(CredentialError):
            await flow.verify_code("000000")

        assert flow.step is RecoveryStep.INPUT_CODE
