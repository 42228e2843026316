from fastapi import APIRouter

from taskmanager.api.auth import router as auth_router
from taskmanager.api.health import router as health_router
from taskmanager.api.pages import router as pages_router
from taskmanager.api.users import router as users_router

# JSON endpoints, mounted under /api/v1
api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(users_router)

# Server-rendered pages and form actions
pages = APIRouter()
pages.include_router(pages_router)
pages.include_router(auth_router)
