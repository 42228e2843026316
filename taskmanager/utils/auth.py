from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status

from taskmanager.context import AppSettings
from taskmanager.schemas.auth import SessionPayload
from taskmanager.utils.session import get_session_from_request


class LoginRequiredError(Exception):
    """Raised by page handlers when the visitor has no valid session."""


async def get_current_session_optional(
    request: Request,
    settings: AppSettings,
) -> Optional[SessionPayload]:
    """Session from the request cookie, or None if absent or invalid."""
    return get_session_from_request(request, settings)


async def get_current_session(
    session: Annotated[Optional[SessionPayload], Depends(get_current_session_optional)],
) -> SessionPayload:
    """Session for JSON endpoints; answers 401 without one."""
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return session


async def require_page_session(
    session: Annotated[Optional[SessionPayload], Depends(get_current_session_optional)],
) -> SessionPayload:
    """
    Session for server-rendered pages.

    The route guard already redirects anonymous visitors away from protected
    pages; this check repeats it in case a page is reached another way.
    """
    if session is None:
        raise LoginRequiredError()
    return session


# Type aliases for dependency injection
CurrentSession = Annotated[SessionPayload, Depends(get_current_session)]
CurrentSessionOptional = Annotated[Optional[SessionPayload], Depends(get_current_session_optional)]
PageSession = Annotated[SessionPayload, Depends(require_page_session)]
