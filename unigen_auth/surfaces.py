"""
Login Surfaces
==============
The normal and senior login screens as objects.

Each surface owns one mode. It drives the password, phone-code or Kakao
flow, catches every AuthError at its boundary and turns it into a
SurfaceResult, and writes successful sessions into the Session Store
Policy. One operation may be in flight per surface; a second submission
while the first is pending comes back BUSY without touching the network.

Usage:
    surface = SeniorLoginSurface(client, store, exchange=exchange)
    result = await surface.send_code("010-1234-5678")
    result = await surface.verify("123456")
    if result.status is SurfaceStatus.ESTABLISHED:
        redirect(result.navigate_to)
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

import structlog

from .challenge import VerificationChallengeManager
from .config import AuthConfig
from .errors import AuthError, IllegalTransition, OperationInFlight, ValidationError, user_message
from .gateway import IdentityResolutionGateway, PasswordCredential, Resolution
from .http import BackendClient
from .logging import bind_flow, clear_flow, log_event, mask_phone
from .models import Mode, Session, SignupRequired
from .oauth import DelegatedIdentityExchange
from .signup import DeferredSignupCollector, SignupDraft
from .storage import SessionStorePolicy
from .validation import require_valid_handle

logger = structlog.get_logger(__name__)


class SurfaceStatus(str, Enum):
    ESTABLISHED = "established"
    SIGNUP_REQUIRED = "signup_required"
    AWAITING_CODE = "awaiting_code"
    REDIRECT = "redirect"
    SIGNED_UP = "signed_up"
    SIGNED_OUT = "signed_out"
    FAILED = "failed"
    BUSY = "busy"
    IGNORED = "ignored"


@dataclass
class SurfaceResult:
    """What the screen should do next."""
    status: SurfaceStatus
    session: Optional[Session] = None
    navigate_to: Optional[str] = None
    message: Optional[str] = None
    field: Optional[str] = None
    collector: Optional[DeferredSignupCollector] = None

    @property
    def ok(self) -> bool:
        return self.status not in (SurfaceStatus.FAILED, SurfaceStatus.BUSY)


class BaseLoginSurface:
    """Behaviour shared by both login screens."""

    mode: Mode = Mode.NORMAL

    def __init__(
        self,
        client: BackendClient,
        store: SessionStorePolicy,
        exchange: Optional[DelegatedIdentityExchange] = None,
        config: Optional[AuthConfig] = None,
    ):
        self.client = client
        self.store = store
        self.exchange = exchange
        self.config = config or client.config
        self.gateway = IdentityResolutionGateway(client)
        self.collector: Optional[DeferredSignupCollector] = None
        self.error: Optional[str] = None
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    @asynccontextmanager
    async def _in_flight(self):
        if self._busy:
            raise OperationInFlight()
        self._busy = True
        try:
            yield
        finally:
            self._busy = False

    async def _run(self, operation: str, action: Callable[[], Awaitable[SurfaceResult]]) -> SurfaceResult:
        """Run ``action`` under the in-flight guard and the error boundary."""
        bind_flow(self.mode.value)
        try:
            async with self._in_flight():
                self.error = None
                return await action()
        except OperationInFlight as exc:
            logger.info("surface_busy", operation=operation)
            return SurfaceResult(SurfaceStatus.BUSY, message=exc.message)
        except AuthError as exc:
            return self._failure(operation, exc)
        finally:
            clear_flow()

    def _failure(self, operation: str, exc: AuthError) -> SurfaceResult:
        message = user_message(exc)
        self.error = message
        logger.info(
            "surface_operation_failed",
            operation=operation,
            error_type=type(exc).__name__,
            status_code=exc.status_code,
        )
        return SurfaceResult(
            SurfaceStatus.FAILED,
            message=message,
            field=getattr(exc, "field", None),
        )

    def _establish(self, session: Session) -> SurfaceResult:
        self.store.persist(session)
        log_event("session_established", mode=session.mode.value, subject_id=session.subject_id)
        return SurfaceResult(
            SurfaceStatus.ESTABLISHED,
            session=session,
            navigate_to=session.mode.home_path,
        )

    def _apply(self, resolution: Resolution) -> SurfaceResult:
        if isinstance(resolution, SignupRequired):
            self.collector = DeferredSignupCollector(self.client, self.mode, resolution)
            self.collector.open()
            return SurfaceResult(SurfaceStatus.SIGNUP_REQUIRED, collector=self.collector)
        return self._establish(resolution)

    # Kakao

    def start_kakao(self, current_url: str) -> SurfaceResult:
        """
        Begin Kakao login from the page at ``current_url``.

        IGNORED when the provider is not ready; the click is dropped quietly.
        """
        if self.exchange is None:
            return SurfaceResult(SurfaceStatus.IGNORED)
        if self._busy:
            return SurfaceResult(SurfaceStatus.BUSY, message=OperationInFlight.default_message)
        authorize_url = self.exchange.initiate(current_url)
        if authorize_url is None:
            return SurfaceResult(SurfaceStatus.IGNORED)
        return SurfaceResult(SurfaceStatus.REDIRECT, navigate_to=authorize_url)

    async def handle_redirect(self, url: str) -> SurfaceResult:
        """Process a page load that may carry the Kakao callback."""
        async def action() -> SurfaceResult:
            if self.exchange is None:
                return SurfaceResult(SurfaceStatus.IGNORED)
            outcome = await self.exchange.handle_callback(url)
            if outcome is None:
                return SurfaceResult(SurfaceStatus.IGNORED)
            if outcome.error is not None:
                raise outcome.error
            return self._apply(outcome.signup_required or outcome.session)

        return await self._run("kakao_callback", action)

    async def resume_kakao(self) -> SurfaceResult:
        """Resume identity resolution with a token kept across a reload."""
        async def action() -> SurfaceResult:
            if self.exchange is None:
                return SurfaceResult(SurfaceStatus.IGNORED)
            outcome = await self.exchange.resume()
            if outcome is None:
                return SurfaceResult(SurfaceStatus.IGNORED)
            if outcome.error is not None:
                raise outcome.error
            return self._apply(outcome.signup_required or outcome.session)

        return await self._run("kakao_resume", action)

    # Deferred signup

    async def submit_signup(self, draft: SignupDraft) -> SurfaceResult:
        """Finish a Kakao signup; the session takes this surface's mode."""
        async def action() -> SurfaceResult:
            if self.collector is None:
                raise IllegalTransition("There is no signup in progress")
            session = await self.collector.submit(draft)
            self.collector = None
            if self.exchange is not None:
                self.exchange.discard_pending_token()
            return self._establish(session)

        return await self._run("kakao_signup", action)

    def cancel_signup(self) -> None:
        if self.collector is not None:
            self.collector.cancel()
            self.collector = None
        if self.exchange is not None:
            self.exchange.discard_pending_token()

    # Session

    def current_session(self) -> Optional[Session]:
        return self.store.load(self.mode)

    async def logout(self, provider_token: Optional[str] = None) -> SurfaceResult:
        """Clear this mode's session; the other mode keeps its own."""
        self.store.logout(self.mode)
        if provider_token and self.exchange is not None:
            await self.exchange.logout(provider_token)
        logger.info("logged_out", mode=self.mode.value)
        return SurfaceResult(SurfaceStatus.SIGNED_OUT, navigate_to=self.config.entry_point)


class NormalLoginSurface(BaseLoginSurface):
    """Phone + password login and signup, plus Kakao."""

    mode = Mode.NORMAL

    async def login(self, phone: str, password: str) -> SurfaceResult:
        async def action() -> SurfaceResult:
            phone_value = (phone or "").strip()
            if not phone_value:
                raise ValidationError("phone", "Please enter your phone number.")
            if not password:
                raise ValidationError("password", "Please enter your password.")
            session = await self.gateway.resolve(PasswordCredential(phone_value, password))
            return self._establish(session)

        return await self._run("password_login", action)

    async def signup(self, name: str, username: str, phone: str, password: str) -> SurfaceResult:
        """
        Register with phone + password.

        Success does not log in: the user is sent back to the login form.
        """
        async def action() -> SurfaceResult:
            handle = require_valid_handle((username or "").strip())
            phone_value = (phone or "").strip()
            if not phone_value:
                raise ValidationError("phone", "Please enter your phone number.")
            if not password:
                raise ValidationError("password", "Please enter your password.")
            display_name = (name or "").strip() or handle
            await self.client.signup(
                name=display_name,
                username=handle,
                phone=phone_value,
                password=password,
            )
            logger.info("password_signup_completed", phone=mask_phone(phone_value))
            return SurfaceResult(SurfaceStatus.SIGNED_UP, navigate_to=self.mode.login_path)

        return await self._run("password_signup", action)


class SeniorLoginSurface(BaseLoginSurface):
    """Phone + one-time code login, plus Kakao."""

    mode = Mode.SENIOR

    STEP_PHONE = "phone"
    STEP_CODE = "code"

    def __init__(
        self,
        client: BackendClient,
        store: SessionStorePolicy,
        exchange: Optional[DelegatedIdentityExchange] = None,
        config: Optional[AuthConfig] = None,
        challenges: Optional[VerificationChallengeManager] = None,
    ):
        super().__init__(client, store, exchange=exchange, config=config)
        self.challenges = challenges or VerificationChallengeManager(client, config=self.config, mode=self.mode)
        self.step = self.STEP_PHONE

    async def send_code(self, phone: str, countdown: bool = True) -> SurfaceResult:
        async def action() -> SurfaceResult:
            await self.challenges.issue(phone)
            self.step = self.STEP_CODE
            if countdown:
                self.challenges.start_countdown()
            return SurfaceResult(SurfaceStatus.AWAITING_CODE)

        return await self._run("send_code", action)

    async def resend(self) -> SurfaceResult:
        async def action() -> SurfaceResult:
            await self.challenges.resend()
            return SurfaceResult(SurfaceStatus.AWAITING_CODE)

        return await self._run("resend_code", action)

    async def verify(self, code: str) -> SurfaceResult:
        async def action() -> SurfaceResult:
            session = await self.challenges.verify(code)
            return self._establish(session)

        return await self._run("verify_code", action)

    def reenter_phone(self) -> None:
        """Back to the phone step; the current challenge is dropped."""
        self.challenges.discard()
        self.step = self.STEP_PHONE
        self.error = None

    async def close(self) -> None:
        await self.challenges.close()
