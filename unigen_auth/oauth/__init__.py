"""
Delegated Identity
==================
Kakao authorization-code login consumed by both login surfaces.
"""

from .models import ExchangeState, ExchangeRecord, RedirectCapture, ExchangeOutcome
from .provider import IdentityProvider, KakaoProvider
from .exchange import DelegatedIdentityExchange, PENDING_TOKEN_KEY
from .url import redirect_uri_for, scrub_url, callback_params

__all__ = [
    # Models
    "ExchangeState",
    "ExchangeRecord",
    "RedirectCapture",
    "ExchangeOutcome",
    # Provider
    "IdentityProvider",
    "KakaoProvider",
    # Exchange
    "DelegatedIdentityExchange",
    "PENDING_TOKEN_KEY",
    # URL
    "redirect_uri_for",
    "scrub_url",
    "callback_params",
]
