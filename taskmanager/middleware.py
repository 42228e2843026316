"""
Route guard.

Every request except static assets passes through here before it reaches a
page handler. Anonymous visitors are sent to the sign-in page when they ask
for a protected area, and signed-in users are sent to the app when they open
the sign-in or sign-up forms.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlencode

from fastapi import Request
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from taskmanager.utils.session import get_session_from_request

logger = logging.getLogger(__name__)

PROTECTED_PREFIXES = ("/dashboard", "/app")
AUTH_ONLY_PREFIXES = ("/auth/signin", "/auth/signup")

SIGNIN_PATH = "/auth/signin"
AUTHENTICATED_LANDING_PATH = "/app"

STATIC_PREFIXES = ("/static/", "/_image")
STATIC_PATHS = frozenset({"/favicon.ico"})
STATIC_EXTENSIONS = re.compile(r"\.(?:svg|png|jpg|jpeg|gif|webp)$", re.IGNORECASE)


class RouteAccess(str, Enum):
    PROTECTED = "protected"
    AUTH_ONLY = "auth-only"
    PUBLIC = "public"


@dataclass(frozen=True)
class GuardDecision:
    redirect_to: str | None = None

    @property
    def allowed(self) -> bool:
        return self.redirect_to is None


ALLOW = GuardDecision()


def is_static_asset(path: str) -> bool:
    return (
        path in STATIC_PATHS
        or path.startswith(STATIC_PREFIXES)
        or STATIC_EXTENSIONS.search(path) is not None
    )


def classify_path(path: str) -> RouteAccess:
    if path.startswith(PROTECTED_PREFIXES):
        return RouteAccess.PROTECTED
    if path.startswith(AUTH_ONLY_PREFIXES):
        return RouteAccess.AUTH_ONLY
    return RouteAccess.PUBLIC


def decide(path: str, has_session: bool) -> GuardDecision:
    access = classify_path(path)
    if access is RouteAccess.PROTECTED and not has_session:
        return GuardDecision(redirect_to=f"{SIGNIN_PATH}?{urlencode({'redirect': path})}")
    if access is RouteAccess.AUTH_ONLY and has_session:
        return GuardDecision(redirect_to=AUTHENTICATED_LANDING_PATH)
    return ALLOW


class RouteGuardMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if is_static_asset(path):
            return await call_next(request)

        settings = request.app.state.services.settings
        session = get_session_from_request(request, settings)
        decision = decide(path, session is not None)
        if decision.allowed:
            return await call_next(request)

        logger.debug("Route guard redirecting %s to %s", path, decision.redirect_to)
        return RedirectResponse(decision.redirect_to, status_code=302)
