import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse, Response

from taskmanager.context import AppSettings, Identity, Users
from taskmanager.schemas.auth import (
    ActionResult,
    ConfirmPasswordForm,
    ForgotPasswordForm,
    SessionPayload,
    SignInForm,
    SignUpForm,
    validate_form,
)
from taskmanager.schemas.user import UserCreate
from taskmanager.services.identity_service import IdentityProviderError
from taskmanager.services.user_service import UserServiceError
from taskmanager.templating import templates
from taskmanager.utils.session import delete_session_cookie, set_session_cookie

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

DEFAULT_SIGNIN_REDIRECT = "/dashboard"


def safe_redirect_target(target: str | None) -> str:
    """Only follow local absolute paths; anything else goes to the dashboard."""
    if not target or not target.startswith("/") or target.startswith("//") or "\\" in target:
        return DEFAULT_SIGNIN_REDIRECT
    return target


def _render(
    request: Request,
    template: str,
    result: ActionResult | None = None,
    status_code: int = status.HTTP_200_OK,
    **context,
) -> Response:
    return templates.TemplateResponse(
        request,
        template,
        {"result": result, "errors": (result.errors if result else None) or {}, **context},
        status_code=status_code,
    )


@router.get("/signin", response_class=HTMLResponse)
async def signin_page(request: Request, redirect: str = "") -> Response:
    return _render(request, "auth/signin.html", redirect=redirect, email="")


@router.post("/signin", response_class=HTMLResponse)
async def signin(
    request: Request,
    settings: AppSettings,
    identity: Identity,
    users: Users,
) -> Response:
    data = await request.form()
    form, errors = validate_form(SignInForm, data)
    if form is None:
        return _render(
            request,
            "auth/signin.html",
            ActionResult.invalid(errors),
            status_code=status.HTTP_400_BAD_REQUEST,
            redirect=data.get("redirect", ""),
            email=data.get("email", ""),
        )

    try:
        claims = await identity.sign_in(form.email, form.password)
    except IdentityProviderError as e:
        result = ActionResult(
            success=False,
            message=e.message or "Sign in failed. Please check your credentials.",
        )
        return _render(
            request,
            "auth/signin.html",
            result,
            status_code=status.HTTP_401_UNAUTHORIZED,
            redirect=form.redirect,
            email=form.email,
        )

    # First sign-in creates the profile record; pages fall back to session data without it.
    try:
        await users.get_or_create_user(
            UserCreate(user_id=claims.subject, email=claims.email, name=claims.name)
        )
    except UserServiceError as e:
        logger.error("Could not ensure user record for %s: %s", claims.subject, e)

    response = RedirectResponse(
        safe_redirect_target(form.redirect), status_code=status.HTTP_303_SEE_OTHER
    )
    set_session_cookie(
        response,
        SessionPayload(user_id=claims.subject, email=claims.email, name=claims.name),
        settings,
    )
    logger.info("User %s signed in", claims.subject)
    return response


@router.get("/signup", response_class=HTMLResponse)
async def signup_page(request: Request) -> Response:
    return _render(request, "auth/signup.html", email="", name="")


@router.post("/signup", response_class=HTMLResponse)
async def signup(request: Request, identity: Identity) -> Response:
    data = await request.form()
    form, errors = validate_form(SignUpForm, data)
    if form is None:
        return _render(
            request,
            "auth/signup.html",
            ActionResult.invalid(errors),
            status_code=status.HTTP_400_BAD_REQUEST,
            email=data.get("email", ""),
            name=data.get("name", ""),
        )

    try:
        await identity.sign_up(form.email, form.password, form.name or None)
    except IdentityProviderError as e:
        result = ActionResult(
            success=False, message=e.message or "Sign up failed. Please try again."
        )
        return _render(
            request,
            "auth/signup.html",
            result,
            status_code=status.HTTP_400_BAD_REQUEST,
            email=form.email,
            name=form.name,
        )

    result = ActionResult(
        success=True,
        message="Sign up successful! Please check your email for verification.",
    )
    return _render(request, "auth/signup.html", result, email="", name="")


@router.get("/forgot-password", response_class=HTMLResponse)
async def forgot_password_page(request: Request) -> Response:
    return _render(request, "auth/forgot_password.html", step="request", email="")


@router.post("/forgot-password", response_class=HTMLResponse)
async def forgot_password(request: Request, identity: Identity) -> Response:
    data = await request.form()
    form, errors = validate_form(ForgotPasswordForm, data)
    if form is None:
        result = ActionResult(
            success=False,
            message="Please enter a valid email address",
            errors=errors,
        )
        return _render(
            request,
            "auth/forgot_password.html",
            result,
            status_code=status.HTTP_400_BAD_REQUEST,
            step="request",
            email=data.get("email", ""),
        )

    try:
        await identity.forgot_password(form.email)
    except IdentityProviderError as e:
        result = ActionResult(
            success=False, message=e.message or "Password reset failed. Please try again."
        )
        return _render(
            request,
            "auth/forgot_password.html",
            result,
            status_code=status.HTTP_400_BAD_REQUEST,
            step="request",
            email=form.email,
        )

    result = ActionResult(success=True, message="Password reset code sent to your email")
    return _render(request, "auth/forgot_password.html", result, step="confirm", email=form.email)


@router.post("/forgot-password/confirm", response_class=HTMLResponse)
async def confirm_password(request: Request, identity: Identity) -> Response:
    data = await request.form()
    form, errors = validate_form(ConfirmPasswordForm, data)
    if form is None:
        return _render(
            request,
            "auth/forgot_password.html",
            ActionResult.invalid(errors),
            status_code=status.HTTP_400_BAD_REQUEST,
            step="confirm",
            email=data.get("email", ""),
        )

    try:
        await identity.confirm_forgot_password(form.email, form.code, form.new_password)
    except IdentityProviderError as e:
        result = ActionResult(
            success=False,
            message=e.message or "Password confirmation failed. Please try again.",
        )
        return _render(
            request,
            "auth/forgot_password.html",
            result,
            status_code=status.HTTP_400_BAD_REQUEST,
            step="confirm",
            email=form.email,
        )

    result = ActionResult(
        success=True,
        message="Password reset successful! You can now sign in with your new password.",
    )
    return _render(request, "auth/forgot_password.html", result, step="done", email=form.email)


@router.post("/signout")
async def signout(settings: AppSettings) -> Response:
    response = RedirectResponse("/", status_code=status.HTTP_303_SEE_OTHER)
    delete_session_cookie(response, settings)
    return response
