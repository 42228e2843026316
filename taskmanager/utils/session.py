"""
Session tokens and the session cookie.

Sessions are stateless: the cookie holds an HS256-signed JWT carrying the
user's id, email and display name. Signing out deletes the cookie; a token
that leaked before that stays valid until it expires.
"""

import logging
from datetime import datetime, timedelta, timezone

from fastapi import Request, Response
from jose import JWTError, jwt

from taskmanager.config import Settings, get_settings
from taskmanager.schemas.auth import SessionPayload

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "session"
SESSION_DURATION = timedelta(days=7)
SESSION_MAX_AGE = int(SESSION_DURATION.total_seconds())
ALGORITHM = "HS256"


class SessionConfigurationError(RuntimeError):
    pass


def _secret_key(settings: Settings) -> str:
    if not settings.session_secret:
        raise SessionConfigurationError("SESSION_SECRET environment variable is not set")
    return settings.session_secret


def create_session(
    payload: SessionPayload,
    settings: Settings | None = None,
    now: datetime | None = None,
) -> str:
    """Issue a signed session token valid for seven days."""
    settings = settings or get_settings()
    issued_at = now or datetime.now(timezone.utc)
    claims = payload.to_claims()
    claims["iat"] = issued_at
    claims["exp"] = issued_at + SESSION_DURATION
    return jwt.encode(claims, _secret_key(settings), algorithm=ALGORITHM)


def verify_session(token: str, settings: Settings | None = None) -> SessionPayload | None:
    """
    Verify a session token.

    Returns None for any bad signature, expired token, malformed payload or
    missing secret. Callers cannot tell these cases apart from "no session".
    """
    settings = settings or get_settings()
    try:
        claims = jwt.decode(
            token,
            _secret_key(settings),
            algorithms=[ALGORITHM],
            options={"verify_exp": True},
        )
    except SessionConfigurationError:
        logger.error("Cannot verify session: SESSION_SECRET is not set")
        return None
    except (JWTError, TypeError, ValueError):
        return None

    user_id = claims.get("userId")
    email = claims.get("email")
    if not isinstance(user_id, str) or not isinstance(email, str):
        return None

    name = claims.get("name")
    exp = claims.get("exp")
    return SessionPayload(
        user_id=user_id,
        email=email,
        name=name if isinstance(name, str) else None,
        exp=exp if isinstance(exp, (int, float)) and not isinstance(exp, bool) else None,
    )


def set_session_cookie(
    response: Response, payload: SessionPayload, settings: Settings | None = None
) -> str:
    settings = settings or get_settings()
    token = create_session(payload, settings)
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        max_age=SESSION_MAX_AGE,
        path="/",
        secure=settings.is_production,
        httponly=True,
        samesite="lax",
    )
    return token


def delete_session_cookie(response: Response, settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    response.delete_cookie(
        key=SESSION_COOKIE_NAME,
        path="/",
        secure=settings.is_production,
        httponly=True,
        samesite="lax",
    )


def get_session_from_request(
    request: Request, settings: Settings | None = None
) -> SessionPayload | None:
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if not token:
        return None
    return verify_session(token, settings)
