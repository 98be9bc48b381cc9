"""
Mode Route Guard

Keeps navigation inside the area that matches the session's mode.

Usage:
    from unigen_auth.guard import ModeGuardMiddleware, ModeRouteGuard

    app.add_middleware(
        ModeGuardMiddleware,
        guard=ModeRouteGuard.from_config(config),
        session_loader=lambda request: store.active_session(),
    )

A mode mismatch is not an error: the user is logged in, just not here, so
they are sent to their own home. Unknown routes go to the entry point
instead of a 404.
"""

from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, Mapping, Optional, Union

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import RedirectResponse

from .config import AuthConfig
from .models import Mode, Session

logger = structlog.get_logger(__name__)

ENTRY_POINT = "/"

DEFAULT_PUBLIC_ROUTES: FrozenSet[str] = frozenset({
    "/",
    "/login/normal",
    "/login/senior",
    "/forgot-password",
    "/email-verification",
})

DEFAULT_PROTECTED_ROUTES: Dict[str, Mode] = {
    "/normal/home": Mode.NORMAL,
    "/normal/search": Mode.NORMAL,
    "/normal/explore": Mode.NORMAL,
    "/normal/reels": Mode.NORMAL,
    "/normal/upload": Mode.NORMAL,
    "/normal/story-create": Mode.NORMAL,
    "/normal/profile": Mode.NORMAL,
    "/normal/profile/edit": Mode.NORMAL,
    "/normal/settings": Mode.NORMAL,
    "/normal/change-password": Mode.NORMAL,
    "/senior/home": Mode.SENIOR,
    "/senior/write": Mode.SENIOR,
    "/senior/profile": Mode.SENIOR,
    "/senior/settings": Mode.SENIOR,
    "/senior/help": Mode.SENIOR,
}


@dataclass(frozen=True)
class Allow:
    """Navigation may proceed."""


@dataclass(frozen=True)
class Redirect:
    """Navigation is replaced by ``target``."""
    target: str
    reason: str = ""


Decision = Union[Allow, Redirect]


def normalize_path(path: str) -> str:
    path = path or ENTRY_POINT
    if len(path) > 1:
        path = path.rstrip("/") or ENTRY_POINT
    return path


class ModeRouteGuard:
    """Pure decision: given a path and the active session, allow or redirect."""

    def __init__(
        self,
        protected_routes: Optional[Mapping[str, Mode]] = None,
        public_routes: Optional[FrozenSet[str]] = None,
        entry_point: str = ENTRY_POINT,
    ):
        self.protected_routes = dict(protected_routes or DEFAULT_PROTECTED_ROUTES)
        self.entry_point = normalize_path(entry_point)
        # The entry point is always reachable, or an anonymous redirect to it would loop.
        self.public_routes = frozenset(public_routes or DEFAULT_PUBLIC_ROUTES) | {self.entry_point}

    @classmethod
    def from_config(cls, config: Optional[AuthConfig] = None, **kwargs) -> "ModeRouteGuard":
        """Guard whose entry point matches the one logout navigates to."""
        config = config or AuthConfig()
        return cls(entry_point=config.entry_point, **kwargs)

    def required_mode(self, path: str) -> Optional[Mode]:
        return self.protected_routes.get(normalize_path(path))

    def check(self, path: str, session: Optional[Session]) -> Decision:
        path = normalize_path(path)

        if path in self.public_routes:
            # A logged-in user landing on the entry point goes straight home.
            if path == self.entry_point and session is not None:
                return Redirect(session.mode.home_path, "already_authenticated")
            return Allow()

        if session is None:
            return Redirect(self.entry_point, "unauthenticated")

        required = self.protected_routes.get(path)
        if required is None:
            return Redirect(self.entry_point, "unknown_route")

        if required is not session.mode:
            return Redirect(session.mode.home_path, "mode_mismatch")

        return Allow()


class ModeGuardMiddleware(BaseHTTPMiddleware):
    """Starlette middleware applying ModeRouteGuard to GET navigations."""

    def __init__(
        self,
        app,
        session_loader: Callable[[Request], Optional[Session]],
        guard: Optional[ModeRouteGuard] = None,
        passthrough_prefixes: tuple = ("/api/", "/static/", "/assets/"),
        config: Optional[AuthConfig] = None,
    ):
        super().__init__(app)
        self.guard = guard or ModeRouteGuard.from_config(config)
        self.session_loader = session_loader
        self.passthrough_prefixes = passthrough_prefixes

    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        if request.method not in ("GET", "HEAD") or path.startswith(self.passthrough_prefixes):
            return await call_next(request)

        session = self.session_loader(request)
        decision = self.guard.check(path, session)

        if isinstance(decision, Redirect):
            logger.info(
                "route_guard_redirect",
                path=path,
                target=decision.target,
                reason=decision.reason,
                mode=session.mode.value if session else None,
            )
            return RedirectResponse(decision.target, status_code=302)

        return await call_next(request)
