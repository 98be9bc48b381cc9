# Unigen Auth
# Dual-mode login orchestration: password, phone code and Kakao, for the
# normal and senior experiences.

from .config import AuthConfig
from .errors import (
    AuthError,
    ValidationError,
    CredentialError,
    ChallengeExpired,
    ChallengeNotFound,
    TransportError,
    IllegalTransition,
    OperationInFlight,
    user_message,
)
from .models import Mode, Session, ProfileHint, SignupRequired
from .http import BackendClient
from .challenge import VerificationChallengeManager
from .gateway import IdentityResolutionGateway, PasswordCredential, DelegatedTokenCredential
from .oauth import DelegatedIdentityExchange, KakaoProvider
from .signup import DeferredSignupCollector, SignupDraft
from .storage import SessionStorePolicy
from .guard import ModeRouteGuard, ModeGuardMiddleware
from .password import ChangePasswordForm, PasswordRecoveryFlow, change_password
from .surfaces import NormalLoginSurface, SeniorLoginSurface, SurfaceResult, SurfaceStatus

__version__ = "0.3.0"

__all__ = [
    # Config
    "AuthConfig",
    # Errors
    "AuthError",
    "ValidationError",
    "CredentialError",
    "ChallengeExpired",
    "ChallengeNotFound",
    "TransportError",
    "IllegalTransition",
    "OperationInFlight",
    "user_message",
    # Models
    "Mode",
    "Session",
    "ProfileHint",
    "SignupRequired",
    # Backend
    "BackendClient",
    # Flows
    "VerificationChallengeManager",
    "IdentityResolutionGateway",
    "PasswordCredential",
    "DelegatedTokenCredential",
    "DelegatedIdentityExchange",
    "KakaoProvider",
    "DeferredSignupCollector",
    "SignupDraft",
    "ChangePasswordForm",
    "PasswordRecoveryFlow",
    "change_password",
    # Session & routing
    "SessionStorePolicy",
    "ModeRouteGuard",
    "ModeGuardMiddleware",
    # Surfaces
    "NormalLoginSurface",
    "SeniorLoginSurface",
    "SurfaceResult",
    "SurfaceStatus",
]
