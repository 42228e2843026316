from typing import Any

from fastapi import APIRouter

from taskmanager import __version__
from taskmanager.context import Services
from taskmanager.services.user_store import DynamoDBUserStore, StoreConfigurationError

router = APIRouter()


@router.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy", "version": __version__}


@router.get("/health/ready")
async def readiness_check(services: Services) -> dict[str, Any]:
    settings = services.settings
    checks = {
        "session_secret": "healthy" if settings.session_secret else "unhealthy: not set",
        "identity_provider": "healthy" if settings.cognito_configured() else "unhealthy: not configured",
        "user_store": "healthy",
    }

    store = services.user_store
    if isinstance(store, DynamoDBUserStore):
        try:
            store.table()
        except StoreConfigurationError as e:
            checks["user_store"] = f"unhealthy: {str(e)}"

    overall = "healthy" if all(v == "healthy" for v in checks.values()) else "unhealthy"

    return {
        "status": overall,
        "checks": checks,
    }
