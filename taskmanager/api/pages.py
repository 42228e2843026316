from typing import Annotated

from fastapi import APIRouter, Form, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from pydantic import ValidationError

from taskmanager.context import Users
from taskmanager.schemas.auth import SessionPayload
from taskmanager.schemas.user import AccountType, UserCreate, UserUpdate
from taskmanager.services.user_service import UserService
from taskmanager.templating import templates
from taskmanager.utils.auth import CurrentSessionOptional, PageSession

router = APIRouter(tags=["Pages"])

# Dashboard counters until tasks and projects exist.
PLACEHOLDER_STATS = {"tasks": 0, "projects": 0, "completed": 0}


@router.get("/", response_class=HTMLResponse)
async def home(request: Request, session: CurrentSessionOptional) -> Response:
    return templates.TemplateResponse(request, "index.html", {"session": session})


@router.get("/dashboard", response_class=HTMLResponse)
async def dashboard(request: Request, session: PageSession) -> Response:
    return templates.TemplateResponse(request, "dashboard.html", {"session": session})


@router.get("/app", response_class=HTMLResponse)
async def app_home(request: Request, session: PageSession, users: Users) -> Response:
    user = await users.get_user(session.user_id)
    display_name = (user.name if user else None) or session.name or "User"
    return templates.TemplateResponse(
        request,
        "app.html",
        {"session": session, "display_name": display_name, "stats": PLACEHOLDER_STATS},
    )


async def _render_profile(
    request: Request,
    session: SessionPayload,
    users: UserService,
    message: str | None = None,
    errors: dict[str, list[str]] | None = None,
    status_code: int = status.HTTP_200_OK,
) -> Response:
    user = await users.get_user(session.user_id)
    # Session data stands in until the user record exists.
    profile = {
        "name": (user.name if user else None) or session.name or "Not provided",
        "email": user.email if user else session.email,
        "account_type": user.account_type if user else AccountType.INDIVIDUAL.value,
    }
    return templates.TemplateResponse(
        request,
        "profile.html",
        {
            "session": session,
            "user": user,
            "profile": profile,
            "account_types": [t.value for t in AccountType],
            "message": message,
            "errors": errors or {},
        },
        status_code=status_code,
    )


@router.get("/app/profile", response_class=HTMLResponse)
async def profile(
    request: Request, session: PageSession, users: Users, updated: bool = False
) -> Response:
    message = "Profile updated" if updated else None
    return await _render_profile(request, session, users, message=message)


@router.post("/app/profile", response_class=HTMLResponse)
async def update_profile(
    request: Request,
    session: PageSession,
    users: Users,
    name: Annotated[str, Form()] = "",
    account_type: Annotated[str, Form(alias="accountType")] = "",
) -> Response:
    update_fields: dict[str, str] = {}
    if name.strip():
        update_fields["name"] = name.strip()
    if account_type:
        update_fields["accountType"] = account_type

    try:
        update = UserUpdate.model_validate(update_fields)
    except ValidationError as exc:
        errors: dict[str, list[str]] = {}
        for error in exc.errors():
            errors.setdefault(str(error["loc"][0]), []).append(error["msg"])
        return await _render_profile(
            request, session, users, errors=errors, status_code=status.HTTP_400_BAD_REQUEST
        )

    await users.get_or_create_user(
        UserCreate(user_id=session.user_id, email=session.email, name=session.name)
    )
    await users.update_user(session.user_id, update)
    return RedirectResponse("/app/profile?updated=1", status_code=status.HTTP_303_SEE_OTHER)
