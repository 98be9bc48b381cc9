"""
Phone Verification
==================
One-time code challenges for the senior phone login and password recovery.
"""

from .models import ChallengeState, VerificationChallenge
from .manager import VerificationChallengeManager

__all__ = [
    "ChallengeState",
    "VerificationChallenge",
    "VerificationChallengeManager",
]
