"""Service layer for identity and user profile access."""

from taskmanager.services.identity_service import (
    CognitoIdentityProvider,
    IdentityClaims,
    IdentityProvider,
    IdentityProviderError,
)
from taskmanager.services.user_service import UserNotFoundError, UserService, UserServiceError
from taskmanager.services.user_store import DynamoDBUserStore, UserStore

__all__ = [
    "CognitoIdentityProvider",
    "DynamoDBUserStore",
    "IdentityClaims",
    "IdentityProvider",
    "IdentityProviderError",
    "UserNotFoundError",
    "UserService",
    "UserServiceError",
    "UserStore",
]
