"""
Exchange Models
===============
State machine and records for the authorization-code handshake.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Optional

from ..errors import IllegalTransition
from ..models import Session, SignupRequired


class ExchangeState(str, Enum):
    """Authorization-code exchange states."""
    AWAITING_CODE = "awaiting_code"
    EXCHANGING_TOKEN = "exchanging_token"
    RESOLVING_IDENTITY = "resolving_identity"
    COMPLETE = "complete"
    FAILED = "failed"


# No edge leads back: nothing is retried automatically.
TRANSITIONS: Dict[ExchangeState, FrozenSet[ExchangeState]] = {
    ExchangeState.AWAITING_CODE: frozenset({ExchangeState.EXCHANGING_TOKEN, ExchangeState.FAILED}),
    ExchangeState.EXCHANGING_TOKEN: frozenset({ExchangeState.RESOLVING_IDENTITY, ExchangeState.FAILED}),
    ExchangeState.RESOLVING_IDENTITY: frozenset({ExchangeState.COMPLETE, ExchangeState.FAILED}),
    ExchangeState.COMPLETE: frozenset(),
    ExchangeState.FAILED: frozenset(),
}


@dataclass
class ExchangeRecord:
    """One pass through the handshake, rebuilt from the redirect URL."""
    redirect_uri: str
    authorization_code: Optional[str] = None
    exchange_state: ExchangeState = ExchangeState.AWAITING_CODE

    def advance(self, new_state: ExchangeState) -> None:
        if new_state not in TRANSITIONS[self.exchange_state]:
            raise IllegalTransition(
                f"Cannot move exchange from {self.exchange_state.value} to {new_state.value}"
            )
        self.exchange_state = new_state

    @property
    def finished(self) -> bool:
        return self.exchange_state in (ExchangeState.COMPLETE, ExchangeState.FAILED)


@dataclass(frozen=True)
class RedirectCapture:
    """Callback parameters read from the redirect URL."""
    code: Optional[str] = None
    error: Optional[str] = None
    error_description: Optional[str] = None
    state: Optional[str] = None


@dataclass
class ExchangeOutcome:
    """Terminal result of processing a callback."""
    state: ExchangeState
    clean_url: str
    session: Optional[Session] = None
    signup_required: Optional[SignupRequired] = None
    error: Optional[Exception] = field(default=None, repr=False)
