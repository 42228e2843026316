import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError

from taskmanager import __version__
from taskmanager.api.router import api_router, pages
from taskmanager.config import Settings, get_settings
from taskmanager.context import ServiceContext, build_service_context
from taskmanager.middleware import SIGNIN_PATH, RouteGuardMiddleware
from taskmanager.services.user_service import UserNotFoundError, UserServiceError
from taskmanager.templating import STATIC_DIR, templates
from taskmanager.utils.auth import LoginRequiredError

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


def _is_api_request(request: Request) -> bool:
    return request.url.path.startswith(API_PREFIX)


def _validation_errors(exc: RequestValidationError | ValidationError) -> JSONResponse:
    errors = []
    for error in exc.errors():
        field = " -> ".join(str(loc) for loc in error["loc"])
        errors.append({"field": field, "message": error["msg"]})

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Validation error",
            "errors": errors,
        },
    )


def create_app(
    settings: Settings | None = None,
    services: ServiceContext | None = None,
) -> FastAPI:
    settings = settings or (services.settings if services else get_settings())
    logging.getLogger("taskmanager").setLevel(settings.log_level.upper())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        settings.validate_security()
        logger.info(
            "Starting %s (environment=%s, cognito=%s)",
            settings.app_name,
            settings.environment,
            "configured" if settings.cognito_configured() else "not configured",
        )
        yield

    app = FastAPI(
        title=settings.app_name,
        description="Task management with managed sign-in and user profiles",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.services = services or build_service_context(settings)

    # The route guard is added last so it wraps every other layer.
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RouteGuardMiddleware)

    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")
    app.include_router(api_router, prefix=API_PREFIX)
    app.include_router(pages)

    @app.exception_handler(LoginRequiredError)
    async def login_required_handler(request: Request, exc: LoginRequiredError) -> Response:
        return RedirectResponse(SIGNIN_PATH, status_code=status.HTTP_302_FOUND)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return _validation_errors(exc)

    @app.exception_handler(ValidationError)
    async def pydantic_validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
        return _validation_errors(exc)

    @app.exception_handler(UserNotFoundError)
    async def user_not_found_handler(request: Request, exc: UserNotFoundError) -> Response:
        if _is_api_request(request):
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND, content={"detail": "User not found"}
            )
        return templates.TemplateResponse(
            request,
            "error.html",
            {"message": "We could not find your profile."},
            status_code=status.HTTP_404_NOT_FOUND,
        )

    @app.exception_handler(UserServiceError)
    async def user_service_error_handler(request: Request, exc: UserServiceError) -> Response:
        logger.error("User store failure on %s %s: %s", request.method, request.url.path, exc)
        if _is_api_request(request):
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"detail": str(exc)}
            )
        return templates.TemplateResponse(
            request,
            "error.html",
            {"message": "Your profile is temporarily unavailable. Please try again later."},
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")

        # Don't expose internal error details in production
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred. Please try again later.",
            },
        )

    return app


app = create_app()
