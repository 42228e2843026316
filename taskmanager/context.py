from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request

from taskmanager.config import Settings
from taskmanager.services.identity_service import CognitoIdentityProvider, IdentityProvider
from taskmanager.services.user_service import UserService
from taskmanager.services.user_store import DynamoDBUserStore, UserStore


@dataclass
class ServiceContext:
    """Clients shared by every request, built once per application."""

    settings: Settings
    identity: IdentityProvider
    user_store: UserStore


def build_service_context(settings: Settings) -> ServiceContext:
    return ServiceContext(
        settings=settings,
        identity=CognitoIdentityProvider(settings),
        user_store=DynamoDBUserStore(
            table_name=settings.dynamodb_users_table,
            region=settings.aws_region,
            endpoint_url=settings.dynamodb_endpoint_url,
        ),
    )


def get_services(request: Request) -> ServiceContext:
    return request.app.state.services


def get_app_settings(services: Annotated[ServiceContext, Depends(get_services)]) -> Settings:
    return services.settings


def get_identity_provider(
    services: Annotated[ServiceContext, Depends(get_services)],
) -> IdentityProvider:
    return services.identity


def get_user_service(services: Annotated[ServiceContext, Depends(get_services)]) -> UserService:
    return UserService(services.user_store)


Services = Annotated[ServiceContext, Depends(get_services)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]
Identity = Annotated[IdentityProvider, Depends(get_identity_provider)]
Users = Annotated[UserService, Depends(get_user_service)]
