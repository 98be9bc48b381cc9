from .client import BackendClient
from .schemas import (
    UserPayload,
    AuthPayload,
    SignupPayload,
    KakaoProfile,
    KakaoLoginPayload,
    ProviderTokenPayload,
)

__all__ = [
    "BackendClient",
    "UserPayload",
    "AuthPayload",
    "SignupPayload",
    "KakaoProfile",
    "KakaoLoginPayload",
    "ProviderTokenPayload",
]
