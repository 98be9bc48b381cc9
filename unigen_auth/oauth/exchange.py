"""
Delegated-Identity Exchange
===========================
Drives the Kakao authorization-code handshake across a full-page redirect.

Nothing survives the redirect in memory. State is rebuilt from the callback
URL; the only thing persisted is the access token needed to resume identity
resolution after a reload. The authorization code is used once and dropped.

    awaiting_code -> exchanging_token -> resolving_identity -> complete
                  \\-> failed          \\-> failed              \\-> failed
"""

import asyncio
from typing import Callable, Optional, Set

import structlog

from ..errors import AuthError, CredentialError, IllegalTransition
from ..gateway import DelegatedTokenCredential, IdentityResolutionGateway, Resolution
from ..models import Mode, SignupRequired
from ..storage import StorageBackend
from .models import ExchangeOutcome, ExchangeRecord, ExchangeState, RedirectCapture
from .provider import IdentityProvider
from .url import callback_params, redirect_uri_for, scrub_url

logger = structlog.get_logger(__name__)

PENDING_TOKEN_KEY = "kakao:pending_token"


class DelegatedIdentityExchange:
    """
    One login surface's view of the delegated-identity handshake.

    ``replace_url`` is called with the scrubbed URL whenever callback
    parameters must disappear from the visible location (the equivalent of
    ``history.replaceState``).
    """

    def __init__(
        self,
        provider: IdentityProvider,
        gateway: IdentityResolutionGateway,
        mode: Mode,
        resume_store: Optional[StorageBackend] = None,
        replace_url: Optional[Callable[[str], None]] = None,
    ):
        self.provider = provider
        self.gateway = gateway
        self.mode = mode
        self.resume_store = resume_store
        self.replace_url = replace_url
        self.record: Optional[ExchangeRecord] = None
        self.current_url: Optional[str] = None
        self._callback_url: Optional[str] = None
        self._last_navigation: Optional[str] = None
        self._consumed_codes: Set[str] = set()

    @property
    def state(self) -> Optional[ExchangeState]:
        return self.record.exchange_state if self.record else None

    def _scrub(self, url: str) -> str:
        clean = scrub_url(url)
        self.current_url = clean
        if self.replace_url is not None:
            self.replace_url(clean)
        return clean

    # Steps

    def initiate(self, current_url: str) -> Optional[str]:
        """
        Start the handshake from the page at ``current_url``.

        Returns:
            The provider authorization URL to navigate to, or None when the
            provider is not initialized yet. That case is only logged: a
            click racing the SDK load should not pop an error at the user.
        """
        if not self.provider.is_initialized():
            logger.warning("delegated_login_skipped", provider=self.provider.name, reason="sdk_not_initialized")
            return None

        redirect_uri = redirect_uri_for(current_url)
        self.record = ExchangeRecord(redirect_uri=redirect_uri)
        logger.info("delegated_login_initiated", provider=self.provider.name, mode=self.mode.value)
        return self.provider.authorization_url(redirect_uri)

    def capture_redirect(self, url: str) -> Optional[RedirectCapture]:
        """
        Read ``code`` / ``error`` from a redirect, once per navigation.

        An ``error`` fails the flow and scrubs the URL. Neither parameter
        means an ordinary page load and returns None.

        Matching on the URL only skips a repeated render of the same page.
        Replay protection is the consumed-code set checked in
        ``exchange_token``: a code is refused the second time whatever URL
        carries it.
        """
        if url == self._last_navigation:
            return None
        params = callback_params(url)
        code = params.get("code") or None
        error = params.get("error") or None
        if not code and not error:
            return None

        self._last_navigation = url
        self._callback_url = url
        self.record = ExchangeRecord(redirect_uri=redirect_uri_for(url), authorization_code=code)
        capture = RedirectCapture(
            code=code,
            error=error,
            error_description=params.get("error_description") or None,
            state=params.get("state") or None,
        )

        if error:
            self.record.advance(ExchangeState.FAILED)
            self.record.authorization_code = None
            self._scrub(url)
            logger.warning("delegated_login_provider_error", provider=self.provider.name, error=error)
        return capture

    async def exchange_token(self, code: str) -> str:
        """
        Trade the captured code for an access token.

        The URL is scrubbed right after the request is dispatched and before
        control returns to the caller, so back/forward navigation cannot
        resubmit the code.

        Raises:
            IllegalTransition: the code was not captured or was already used
            TokenExchangeFailed: the provider refused or was unreachable
        """
        record = self.record
        if record is None or record.authorization_code != code:
            raise IllegalTransition("No captured authorization code to exchange")
        if code in self._consumed_codes:
            raise IllegalTransition("Authorization code already used")

        self._consumed_codes.add(code)
        record.advance(ExchangeState.EXCHANGING_TOKEN)
        record.authorization_code = None

        exchange = asyncio.ensure_future(self.provider.exchange_code(code, record.redirect_uri))
        try:
            if self._callback_url is not None:
                self._scrub(self._callback_url)
            token = await exchange
        except AuthError:
            record.advance(ExchangeState.FAILED)
            raise
        finally:
            if not exchange.done():
                exchange.cancel()

        if self.resume_store is not None:
            self.resume_store.set(PENDING_TOKEN_KEY, token)
        return token

    async def resolve_identity(self, token: str) -> Resolution:
        """
        Ask the backend who the token belongs to.

        Raises:
            CredentialError / TransportError: from the gateway
        """
        if self.record is None:
            self.record = ExchangeRecord(redirect_uri="", exchange_state=ExchangeState.EXCHANGING_TOKEN)
        record = self.record
        record.advance(ExchangeState.RESOLVING_IDENTITY)
        try:
            resolution = await self.gateway.resolve(DelegatedTokenCredential(token, self.mode))
        except AuthError:
            record.advance(ExchangeState.FAILED)
            self.discard_pending_token()
            raise

        record.advance(ExchangeState.COMPLETE)
        if not isinstance(resolution, SignupRequired):
            self.discard_pending_token()
        return resolution

    # Drivers

    async def handle_callback(self, url: str) -> Optional[ExchangeOutcome]:
        """
        Process a page load that may be an OAuth callback.

        Returns:
            None for an ordinary load, otherwise a terminal outcome whose
            ``clean_url`` carries neither ``code`` nor ``error``.
        """
        capture = self.capture_redirect(url)
        if capture is None:
            return None

        clean = scrub_url(url)
        if capture.error:
            message = capture.error_description or capture.error
            return ExchangeOutcome(
                state=ExchangeState.FAILED,
                clean_url=clean,
                error=CredentialError(f"Kakao login failed: {message}"),
            )

        try:
            token = await self.exchange_token(capture.code)
            resolution = await self.resolve_identity(token)
        except AuthError as exc:
            logger.warning(
                "delegated_login_failed",
                provider=self.provider.name,
                stage=self.state.value if self.state else None,
                error_type=type(exc).__name__,
            )
            return ExchangeOutcome(state=ExchangeState.FAILED, clean_url=clean, error=exc)
        finally:
            self._scrub(url)

        return self._outcome(resolution, clean)

    async def resume(self) -> Optional[ExchangeOutcome]:
        """Finish resolution with a token saved before a reload, if any."""
        token = self.pending_token()
        if not token:
            return None
        self.record = None
        clean = self.current_url or ""
        try:
            resolution = await self.resolve_identity(token)
        except AuthError as exc:
            return ExchangeOutcome(state=ExchangeState.FAILED, clean_url=clean, error=exc)
        return self._outcome(resolution, clean)

    @staticmethod
    def _outcome(resolution: Resolution, clean: str) -> ExchangeOutcome:
        if isinstance(resolution, SignupRequired):
            return ExchangeOutcome(state=ExchangeState.COMPLETE, clean_url=clean, signup_required=resolution)
        return ExchangeOutcome(state=ExchangeState.COMPLETE, clean_url=clean, session=resolution)

    # Resume token

    def pending_token(self) -> Optional[str]:
        if self.resume_store is None:
            return None
        return self.resume_store.get(PENDING_TOKEN_KEY)

    def discard_pending_token(self) -> None:
        if self.resume_store is not None:
            self.resume_store.delete(PENDING_TOKEN_KEY)

    async def logout(self, access_token: str) -> bool:
        """Log out of the provider as well."""
        return await self.provider.logout(access_token)
