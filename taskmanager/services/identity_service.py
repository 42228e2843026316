import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from starlette.concurrency import run_in_threadpool

from taskmanager.config import Settings
from taskmanager.utils.oidc import read_unverified_claims, validate_id_token

logger = logging.getLogger(__name__)


@dataclass
class IdentityClaims:
    subject: str  # Durable user id (sub)
    email: str
    name: Optional[str] = None


@dataclass
class SignUpResult:
    user_sub: str
    user_confirmed: bool


class IdentityProviderError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class IdentityProvider(Protocol):
    async def sign_up(self, email: str, password: str, name: Optional[str] = None) -> SignUpResult: ...

    async def sign_in(self, email: str, password: str) -> IdentityClaims: ...

    async def forgot_password(self, email: str) -> None: ...

    async def confirm_forgot_password(self, email: str, code: str, new_password: str) -> None: ...


def _error_message(error: Exception, default: str) -> str:
    if isinstance(error, ClientError):
        return error.response.get("Error", {}).get("Message") or default
    return default


class CognitoIdentityProvider:
    """Identity provider backed by an AWS Cognito user pool."""

    def __init__(self, settings: Settings):
        self.region = settings.aws_region
        self.user_pool_id = settings.cognito_user_pool_id
        self.client_id = settings.cognito_client_id
        self.issuer_url = settings.cognito_issuer_url
        self.verify_id_token = settings.cognito_verify_id_token
        self._client: Any | None = None

    def client(self) -> Any:
        if self._client is None:
            if not (self.region and self.user_pool_id and self.client_id):
                raise IdentityProviderError(
                    "Cognito configuration not set. Set AWS_REGION, COGNITO_USER_POOL_ID "
                    "and COGNITO_CLIENT_ID."
                )
            self._client = boto3.client("cognito-idp", region_name=self.region)
        return self._client

    async def _call(self, operation: str, default_message: str, **params: Any) -> dict:
        client = self.client()
        try:
            return await run_in_threadpool(getattr(client, operation), **params)
        except (ClientError, BotoCoreError) as e:
            logger.info("Cognito %s failed: %s", operation, e)
            raise IdentityProviderError(_error_message(e, default_message)) from e

    async def sign_up(self, email: str, password: str, name: Optional[str] = None) -> SignUpResult:
        attributes = [{"Name": "email", "Value": email}]
        if name:
            attributes.append({"Name": "name", "Value": name})

        response = await self._call(
            "sign_up",
            "Sign up failed",
            ClientId=self.client_id,
            Username=email,
            Password=password,
            UserAttributes=attributes,
        )
        return SignUpResult(
            user_sub=response["UserSub"],
            user_confirmed=bool(response.get("UserConfirmed")),
        )

    async def sign_in(self, email: str, password: str) -> IdentityClaims:
        response = await self._call(
            "initiate_auth",
            "Sign in failed",
            AuthFlow="USER_PASSWORD_AUTH",
            ClientId=self.client_id,
            AuthParameters={"USERNAME": email, "PASSWORD": password},
        )

        result = response.get("AuthenticationResult")
        if not result:
            if response.get("ChallengeName") == "NEW_PASSWORD_REQUIRED":
                raise IdentityProviderError("New password required. Please reset your password.")
            raise IdentityProviderError("Authentication failed")

        id_token = result.get("IdToken")
        if not id_token:
            raise IdentityProviderError("Authentication failed")

        try:
            if self.verify_id_token:
                claims = await validate_id_token(id_token, self.issuer_url, self.client_id)
            else:
                claims = read_unverified_claims(id_token)
        except ValueError as e:
            logger.warning("Rejected ID token for %s: %s", email, e)
            raise IdentityProviderError("Authentication failed") from e

        subject = claims.get("sub")
        if not subject:
            raise IdentityProviderError("Authentication failed")
        return IdentityClaims(
            subject=subject,
            email=claims.get("email") or email,
            name=claims.get("name"),
        )

    async def forgot_password(self, email: str) -> None:
        await self._call(
            "forgot_password",
            "Password reset failed",
            ClientId=self.client_id,
            Username=email,
        )

    async def confirm_forgot_password(self, email: str, code: str, new_password: str) -> None:
        await self._call(
            "confirm_forgot_password",
            "Password confirmation failed",
            ClientId=self.client_id,
            Username=email,
            ConfirmationCode=code,
            Password=new_password,
        )
