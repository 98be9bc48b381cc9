"""
Identity Resolution Gateway
===========================
Asks the backend whether a proof of identity maps to an account.

One contract for every channel: ``resolve(credential)`` returns a Session,
or SignupRequired when a delegated identity has no account yet. The phone
OTP channel resolves through VerificationChallengeManager.verify, which
follows the same contract in a single call.
"""

from dataclasses import dataclass
from typing import Union

import structlog

from .http import BackendClient
from .logging import mask_phone
from .models import Mode, ProfileHint, Session, SignupRequired

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PasswordCredential:
    """Phone and password."""
    phone: str
    password: str
    mode: Mode = Mode.NORMAL

    def __repr__(self) -> str:
        return f"PasswordCredential(phone={mask_phone(self.phone)!r}, mode={self.mode.value!r})"


@dataclass(frozen=True)
class DelegatedTokenCredential:
    """An access token issued by the identity provider."""
    access_token: str
    mode: Mode

    def __repr__(self) -> str:
        return f"DelegatedTokenCredential(mode={self.mode.value!r}, access_token='***')"


Credential = Union[PasswordCredential, DelegatedTokenCredential]
Resolution = Union[Session, SignupRequired]


class IdentityResolutionGateway:
    """Single-request, single-outcome identity resolution. Never retries."""

    def __init__(self, client: BackendClient):
        self.client = client

    async def resolve(self, credential: Credential) -> Resolution:
        """
        Resolve a credential.

        Raises:
            CredentialError: the backend rejected the credential
            TransportError: the backend could not be reached or answered garbage
            TypeError: unknown credential variant
        """
        if isinstance(credential, PasswordCredential):
            return await self._resolve_password(credential)
        if isinstance(credential, DelegatedTokenCredential):
            return await self._resolve_delegated(credential)
        raise TypeError(f"Unsupported credential: {type(credential).__name__}")

    async def _resolve_password(self, credential: PasswordCredential) -> Session:
        payload = await self.client.login(credential.phone, credential.password)
        session = payload.to_session(credential.mode)
        logger.info("identity_resolved", channel="password", subject_id=session.subject_id)
        return session

    async def _resolve_delegated(self, credential: DelegatedTokenCredential) -> Resolution:
        payload = await self.client.kakao_login(credential.mode, credential.access_token)
        if payload.needs_signup:
            hint = payload.kakao_user.to_hint() if payload.kakao_user else ProfileHint()
            logger.info("identity_unregistered", channel="kakao", mode=credential.mode.value)
            return SignupRequired(
                hint=hint,
                access_token=credential.access_token,
                mode=credential.mode,
            )
        session = payload.to_auth().to_session(credential.mode)
        logger.info("identity_resolved", channel="kakao", subject_id=session.subject_id)
        return session