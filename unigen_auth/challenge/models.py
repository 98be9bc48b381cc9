"""
Challenge Models
================
Data models and enums for phone verification challenges.
"""

import math
from dataclasses import dataclass, field
from enum import Enum


class ChallengeState(str, Enum):
    """Verification challenge states."""
    PENDING = "pending"
    EXPIRED = "expired"
    VERIFIED = "verified"


@dataclass
class VerificationChallenge:
    """A one-time code sent to a phone for one login attempt. Never persisted."""
    phone_number: str
    issued_at: float
    validity_window_seconds: int = 60
    code_length: int = 6
    attempt_state: ChallengeState = ChallengeState.PENDING
    remaining_seconds: int = field(init=False, default=0)

    def __post_init__(self):
        self.remaining_seconds = self.validity_window_seconds

    def state_at(self, now: float) -> ChallengeState:
        """State as a pure function of time; verification is sticky."""
        if self.attempt_state is not ChallengeState.PENDING:
            return self.attempt_state
        if now - self.issued_at >= self.validity_window_seconds:
            return ChallengeState.EXPIRED
        return ChallengeState.PENDING

    def seconds_left(self, now: float) -> int:
        if self.state_at(now) is not ChallengeState.PENDING:
            return 0
        by_clock = math.ceil(self.validity_window_seconds - (now - self.issued_at))
        return max(0, min(self.remaining_seconds, by_clock))
