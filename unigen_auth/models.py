"""
Auth Models
===========
Core data models shared across the login channels.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Mode(str, Enum):
    """Product experiences, each with its own home area and session scope."""
    NORMAL = "normal"
    SENIOR = "senior"

    @property
    def home_path(self) -> str:
        return f"/{self.value}/home"

    @property
    def login_path(self) -> str:
        return f"/login/{self.value}"


@dataclass(frozen=True)
class Session:
    """An established login for one mode."""
    subject_id: str
    display_name: str
    mode: Mode
    credential_token: str

    def __repr__(self) -> str:
        return (
            f"Session(subject_id={self.subject_id!r}, display_name={self.display_name!r}, "
            f"mode={self.mode.value!r}, credential_token='***')"
        )


@dataclass(frozen=True)
class ProfileHint:
    """Provider-supplied profile data used to pre-fill signup."""
    display_name: str = ""
    email: Optional[str] = None


@dataclass(frozen=True)
class SignupRequired:
    """The backend knows the delegated identity but has no matching account."""
    hint: ProfileHint
    access_token: str
    mode: Mode

    def __repr__(self) -> str:
        return f"SignupRequired(hint={self.hint!r}, mode={self.mode.value!r}, access_token='***')"
