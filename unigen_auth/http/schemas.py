"""
Backend Payloads
================
Pydantic models for the backend and provider responses the orchestrator reads.
"""

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..models import Mode, ProfileHint, Session


def _lift_data_envelope(values: Any) -> Any:
    """Merge a ``{"data": {...}}`` envelope into the top level; nested keys win."""
    if isinstance(values, dict) and isinstance(values.get("data"), dict):
        merged = {k: v for k, v in values.items() if k != "data"}
        merged.update(values["data"])
        return merged
    return values


class UserPayload(BaseModel):
    """User record as returned by the auth endpoints."""
    model_config = ConfigDict(extra="allow")

    id: Union[int, str]
    name: Optional[str] = None
    username: Optional[str] = None
    preferred_mode: Optional[str] = None
    signup_mode: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or self.username or ""


class AuthPayload(BaseModel):
    """``{token, user}``, possibly wrapped in ``data`` or with ``tokens``."""
    model_config = ConfigDict(extra="ignore")

    token: str
    user: UserPayload

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, values: Any) -> Any:
        values = _lift_data_envelope(values)
        if isinstance(values, dict) and not values.get("token") and values.get("tokens"):
            tokens = values["tokens"]
            if isinstance(tokens, dict):
                tokens = tokens.get("accessToken") or tokens.get("access_token") or tokens.get("token")
            values = {**values, "token": tokens}
        return values

    def to_session(self, mode: Mode) -> Session:
        return Session(
            subject_id=str(self.user.id),
            display_name=self.user.display_name,
            mode=mode,
            credential_token=self.token,
        )


class SignupPayload(BaseModel):
    """Password signup acknowledgement."""
    model_config = ConfigDict(extra="ignore")

    user: Optional[UserPayload] = None

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, values: Any) -> Any:
        return _lift_data_envelope(values)


class KakaoProfile(BaseModel):
    """Profile fields the backend echoes from Kakao."""
    model_config = ConfigDict(extra="allow")

    nickname: Optional[str] = None
    email: Optional[str] = None

    def to_hint(self) -> ProfileHint:
        return ProfileHint(display_name=self.nickname or "", email=self.email)


class KakaoLoginPayload(BaseModel):
    """Either an established login or a needs-signup signal."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    needs_signup: bool = Field(False, alias="needsSignup")
    kakao_user: Optional[KakaoProfile] = Field(None, alias="kakaoUser")
    token: Optional[str] = None
    user: Optional[UserPayload] = None

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, values: Any) -> Any:
        return _lift_data_envelope(values)

    @model_validator(mode="after")
    def _check_outcome(self) -> "KakaoLoginPayload":
        if not self.needs_signup and (not self.token or self.user is None):
            raise ValueError("login response carries neither a session nor needsSignup")
        return self

    def to_auth(self) -> AuthPayload:
        return AuthPayload(token=self.token, user=self.user)


class ProviderTokenPayload(BaseModel):
    """OAuth token endpoint response."""
    model_config = ConfigDict(extra="ignore")

    access_token: str
    token_type: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
