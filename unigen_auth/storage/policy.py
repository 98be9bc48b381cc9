"""
Session Store Policy
====================
Decides, per mode, which scope holds the session.

normal  durable store, shared across tabs, survives restarts
senior  tab-scoped store, cleared when the browsing context closes

Senior login is phone + OTP with nothing to forget, so a shorter-lived
credential there costs the user almost nothing and keeps less data on disk.
Each scope holds the bearer token and a small profile record; never a
password or a code. Writes are last-writer-wins per mode.
"""

import json
from typing import Dict, Optional

import structlog

from ..config import AuthConfig
from ..models import Mode, Session
from .backends import FileStorage, MemoryStorage, RedisStorage, StorageBackend

logger = structlog.get_logger(__name__)

TOKEN_KEY = "token"
USER_KEY = "user"
ACTIVE_MODE_KEY = "appMode"


class SessionStorePolicy:
    """Mode-keyed session persistence."""

    def __init__(self, durable: StorageBackend, tab: StorageBackend):
        self._scopes: Dict[Mode, StorageBackend] = {
            Mode.NORMAL: durable,
            Mode.SENIOR: tab,
        }
        self._tab = tab

    @classmethod
    def from_config(cls, config: Optional[AuthConfig] = None) -> "SessionStorePolicy":
        """Durable scope from Redis when configured, else a JSON file."""
        config = config or AuthConfig()
        if config.redis_url:
            durable: StorageBackend = RedisStorage.from_url(config.redis_url)
        else:
            durable = FileStorage(config.durable_store_path)
        return cls(durable=durable, tab=MemoryStorage())

    def scope_for(self, mode: Mode) -> StorageBackend:
        return self._scopes[mode]

    @staticmethod
    def _key(mode: Mode, name: str) -> str:
        return f"{mode.value}:{name}"

    def persist(self, session: Session) -> None:
        """Write the session into its mode's scope, replacing any previous one."""
        scope = self.scope_for(session.mode)
        # Token and profile go in one write so readers never see a mix of two logins.
        scope.set_many({
            self._key(session.mode, TOKEN_KEY): session.credential_token,
            self._key(session.mode, USER_KEY): json.dumps(
                {"id": session.subject_id, "name": session.display_name}
            ),
        })
        self._tab.set(ACTIVE_MODE_KEY, session.mode.value)
        logger.info(
            "session_persisted",
            mode=session.mode.value,
            subject_id=session.subject_id,
            durable=scope.durable,
        )

    def load(self, mode: Mode) -> Optional[Session]:
        """Read the session for a mode, or None."""
        scope = self.scope_for(mode)
        token = scope.get(self._key(mode, TOKEN_KEY))
        if not token:
            return None

        profile: dict = {}
        raw = scope.get(self._key(mode, USER_KEY))
        if raw:
            try:
                profile = json.loads(raw)
            except ValueError:
                logger.warning("session_profile_unreadable", mode=mode.value)
        if not isinstance(profile, dict):
            profile = {}

        return Session(
            subject_id=str(profile.get("id", "")),
            display_name=profile.get("name") or "",
            mode=mode,
            credential_token=token,
        )

    def clear(self, mode: Mode) -> None:
        """Remove the session for one mode; the other mode is untouched."""
        scope = self.scope_for(mode)
        scope.delete_many([self._key(mode, TOKEN_KEY), self._key(mode, USER_KEY)])
        if self._tab.get(ACTIVE_MODE_KEY) == mode.value:
            self._tab.delete(ACTIVE_MODE_KEY)
        logger.info("session_cleared", mode=mode.value)

    def logout(self, mode: Mode) -> None:
        """User-initiated logout for one mode."""
        logger.info("session_logout", mode=mode.value)
        self.clear(mode)

    def invalidate(self, mode: Mode) -> None:
        """Token rejected by the backend (401)."""
        logger.warning("session_token_invalidated", mode=mode.value)
        self.clear(mode)

    def active_mode(self) -> Optional[Mode]:
        """The mode most recently logged into in this tab, if still live."""
        value = self._tab.get(ACTIVE_MODE_KEY)
        if value:
            mode = Mode(value)
            if self.load(mode) is not None:
                return mode
        return None

    def active_session(self) -> Optional[Session]:
        """
        The session this tab is using.

        Prefers the tab's selected mode, then a senior session (tab-scoped,
        so it must belong to this tab), then the durable normal session.
        """
        mode = self.active_mode()
        if mode is not None:
            return self.load(mode)
        return self.load(Mode.SENIOR) or self.load(Mode.NORMAL)

    def bearer_headers(self, mode: Mode) -> Dict[str, str]:
        """Authorization header for authenticated calls in a mode."""
        session = self.load(mode)
        if session is None:
            return {}
        return {"Authorization": f"Bearer {session.credential_token}"}

    def close_context(self) -> None:
        """The browsing context closed: the tab scope goes away."""
        self._tab.clear()
        logger.info("tab_context_closed")
