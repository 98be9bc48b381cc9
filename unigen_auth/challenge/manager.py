"""
Verification Challenge Manager
==============================
Issues, counts down, verifies and re-issues the phone one-time code.
"""

import asyncio
import time
from typing import Callable, Optional

import structlog

from ..config import AuthConfig
from ..errors import ChallengeExpired, ChallengeNotFound, CodeMismatch, CredentialError, ValidationError
from ..http import BackendClient
from ..logging import mask_phone
from ..models import Mode, Session
from ..validation import validate_sender_phone
from .models import ChallengeState, VerificationChallenge

logger = structlog.get_logger(__name__)


class VerificationChallengeManager:
    """
    Owns one phone verification challenge at a time.

    The countdown is presentation state only: ticking never calls the
    backend. Verification and session issuance are one backend call.
    """

    def __init__(
        self,
        client: BackendClient,
        config: Optional[AuthConfig] = None,
        phone_validator: Callable[[str], str] = validate_sender_phone,
        clock: Callable[[], float] = time.monotonic,
        tick_interval: float = 1.0,
        code_type: Optional[str] = None,
        mode: Mode = Mode.SENIOR,
    ):
        self.client = client
        self.config = config or client.config
        self.phone_validator = phone_validator
        self.clock = clock
        self.tick_interval = tick_interval
        self.code_type = code_type
        self.mode = mode
        self.challenge: Optional[VerificationChallenge] = None
        self._countdown: Optional[asyncio.Task] = None
        self._countdown_requested = False

    # State

    def _refresh(self) -> None:
        """Apply clock-based expiry."""
        challenge = self.challenge
        if challenge is None or challenge.attempt_state is not ChallengeState.PENDING:
            return
        if challenge.state_at(self.clock()) is ChallengeState.EXPIRED:
            challenge.attempt_state = ChallengeState.EXPIRED
            challenge.remaining_seconds = 0
            logger.info("otp_challenge_expired", phone=mask_phone(challenge.phone_number))

    @property
    def state(self) -> Optional[ChallengeState]:
        self._refresh()
        return self.challenge.attempt_state if self.challenge else None

    @property
    def remaining_seconds(self) -> int:
        if self.challenge is None:
            return 0
        self._refresh()
        return self.challenge.seconds_left(self.clock())

    @property
    def can_verify(self) -> bool:
        return self.state is ChallengeState.PENDING

    def format_remaining(self) -> str:
        """Countdown as ``M:SS``."""
        minutes, seconds = divmod(self.remaining_seconds, 60)
        return f"{minutes}:{seconds:02d}"

    # Operations

    def _new_challenge(self, phone: str) -> VerificationChallenge:
        return VerificationChallenge(
            phone_number=phone,
            issued_at=self.clock(),
            validity_window_seconds=self.config.challenge_window_seconds,
            code_length=self.config.code_length,
        )

    async def issue(self, phone: str) -> VerificationChallenge:
        """
        Validate the phone, send a code and start a fresh challenge.

        Raises:
            InvalidPhoneFormat: phone rejected by this channel's validator
            CredentialError / TransportError: the send failed
        """
        digits = self.phone_validator(phone)
        await self.client.send_code(digits, code_type=self.code_type)

        self.stop_countdown()
        self.challenge = self._new_challenge(digits)
        logger.info(
            "otp_challenge_issued",
            phone=mask_phone(digits),
            window=self.challenge.validity_window_seconds,
        )
        return self.challenge

    async def resend(self) -> VerificationChallenge:
        """
        Replace the challenge with a fresh one for the same phone.

        Allowed in any state and never throttled here. A countdown started
        for the previous challenge restarts at the full window, even when it
        already ran out.
        """
        if self.challenge is None:
            raise ChallengeNotFound()
        restart = self._countdown_requested
        phone = self.challenge.phone_number
        await self.client.send_code(phone, code_type=self.code_type)

        self.stop_countdown()
        self.challenge = self._new_challenge(phone)
        logger.info("otp_challenge_reissued", phone=mask_phone(phone))
        if restart:
            self.start_countdown()
        return self.challenge

    def tick(self) -> None:
        """One countdown step; reaching zero expires the challenge."""
        challenge = self.challenge
        if challenge is None:
            return
        self._refresh()
        if challenge.attempt_state is not ChallengeState.PENDING:
            return
        challenge.remaining_seconds = max(0, challenge.remaining_seconds - 1)
        if challenge.remaining_seconds == 0:
            challenge.attempt_state = ChallengeState.EXPIRED
            logger.info("otp_challenge_expired", phone=mask_phone(challenge.phone_number))

    def _check_code(self, code: str) -> str:
        code = (code or "").strip()
        length = self.challenge.code_length
        if len(code) != length or not code.isdigit():
            raise ValidationError("code", f"Enter the {length}-digit verification code.")
        return code

    async def verify(self, code: str) -> Session:
        """
        Verify the code and log in, in one backend call.

        Raises:
            ChallengeNotFound: no challenge, or it was already used
            ChallengeExpired: the window elapsed; no request is made
            ValidationError: the code is not ``code_length`` digits
            CodeMismatch: the backend rejected the code
        """
        if self.challenge is None:
            raise ChallengeNotFound()
        state = self.state
        if state is ChallengeState.EXPIRED:
            raise ChallengeExpired()
        if state is ChallengeState.VERIFIED:
            raise ChallengeNotFound("This code has already been used.")

        code = self._check_code(code)
        challenge = self.challenge
        try:
            payload = await self.client.senior_phone_login(challenge.phone_number, code)
        except CredentialError as exc:
            logger.warning("otp_code_rejected", phone=mask_phone(challenge.phone_number))
            raise CodeMismatch(exc.message, status_code=exc.status_code) from exc

        challenge.attempt_state = ChallengeState.VERIFIED
        self.stop_countdown()
        logger.info("otp_challenge_verified", phone=mask_phone(challenge.phone_number))
        return payload.to_session(self.mode)

    def discard(self) -> None:
        """Drop the challenge (user goes back to re-enter the phone)."""
        self.stop_countdown()
        self.challenge = None

    # Countdown

    @property
    def countdown_running(self) -> bool:
        return self._countdown is not None and not self._countdown.done()

    def start_countdown(self) -> asyncio.Task:
        """Run ``tick`` every ``tick_interval`` seconds until the challenge leaves pending."""
        self.stop_countdown()
        self._countdown = asyncio.get_running_loop().create_task(self._run_countdown())
        self._countdown_requested = True
        return self._countdown

    async def _run_countdown(self) -> None:
        while self.state is ChallengeState.PENDING:
            await asyncio.sleep(self.tick_interval)
            self.tick()

    def stop_countdown(self) -> None:
        if self._countdown is not None and not self._countdown.done():
            self._countdown.cancel()
        self._countdown = None
        self._countdown_requested = False

    async def close(self) -> None:
        """Cancel the countdown and wait for it to unwind."""
        task = self._countdown
        self.stop_countdown()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass
