"""
Auth Configuration
==================
Backend and identity-provider settings for the login orchestrator.
"""

import os
from dataclasses import dataclass
from typing import Optional


DEFAULT_API_BASE_URL = "http://localhost:3000/api/v1"
KAKAO_AUTHORIZE_URL = "https://kauth.kakao.com/oauth/authorize"
KAKAO_TOKEN_URL = "https://kauth.kakao.com/oauth/token"
KAKAO_LOGOUT_URL = "https://kapi.kakao.com/v1/user/logout"


@dataclass
class AuthConfig:
    """Configuration for backend and identity-provider connections."""
    api_base_url: str = os.environ.get("UNIGEN_API_BASE_URL", DEFAULT_API_BASE_URL)
    timeout: float = 10.0

    # Kakao (delegated identity)
    kakao_client_id: str = os.environ.get("UNIGEN_KAKAO_REST_API_KEY", "")
    kakao_authorize_url: str = os.environ.get("UNIGEN_KAKAO_AUTHORIZE_URL", KAKAO_AUTHORIZE_URL)
    kakao_token_url: str = os.environ.get("UNIGEN_KAKAO_TOKEN_URL", KAKAO_TOKEN_URL)
    kakao_logout_url: str = KAKAO_LOGOUT_URL

    # Session persistence
    durable_store_path: str = os.environ.get(
        "UNIGEN_DURABLE_STORE_PATH", os.path.expanduser("~/.unigen/session.json")
    )
    redis_url: Optional[str] = os.environ.get("UNIGEN_REDIS_URL") or None

    # Verification challenge
    challenge_window_seconds: int = 60
    code_length: int = 6

    entry_point: str = os.environ.get("UNIGEN_ENTRY_POINT", "/")

    @classmethod
    def from_env(cls) -> "AuthConfig":
        """Build a config from the current environment."""
        return cls(
            api_base_url=os.environ.get("UNIGEN_API_BASE_URL", DEFAULT_API_BASE_URL),
            timeout=float(os.environ.get("UNIGEN_API_TIMEOUT", "10.0")),
            kakao_client_id=os.environ.get("UNIGEN_KAKAO_REST_API_KEY", ""),
            kakao_authorize_url=os.environ.get("UNIGEN_KAKAO_AUTHORIZE_URL", KAKAO_AUTHORIZE_URL),
            kakao_token_url=os.environ.get("UNIGEN_KAKAO_TOKEN_URL", KAKAO_TOKEN_URL),
            durable_store_path=os.environ.get(
                "UNIGEN_DURABLE_STORE_PATH", os.path.expanduser("~/.unigen/session.json")
            ),
            redis_url=os.environ.get("UNIGEN_REDIS_URL") or None,
            entry_point=os.environ.get("UNIGEN_ENTRY_POINT", "/"),
        )
