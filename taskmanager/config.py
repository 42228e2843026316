import logging
from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_USERS_TABLE = "TaskManagerPro-Users"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "TaskManager Pro"
    debug: bool = False
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")

    # Sessions
    session_secret: str | None = Field(default=None)

    # AWS
    aws_region: str | None = Field(
        default=None,
        validation_alias=AliasChoices("aws_region", "aws_default_region"),
    )

    # Identity provider - Cognito
    cognito_user_pool_id: str | None = Field(default=None)
    cognito_client_id: str | None = Field(default=None)
    cognito_verify_id_token: bool = Field(default=True)

    # User store - DynamoDB
    dynamodb_users_table: str = Field(default=DEFAULT_USERS_TABLE)
    dynamodb_endpoint_url: str | None = Field(default=None)  # DynamoDB Local, LocalStack

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def cognito_issuer_url(self) -> str | None:
        if not (self.aws_region and self.cognito_user_pool_id):
            return None
        return f"https://cognito-idp.{self.aws_region}.amazonaws.com/{self.cognito_user_pool_id}"

    def cognito_configured(self) -> bool:
        return bool(self.aws_region and self.cognito_user_pool_id and self.cognito_client_id)

    def validate_security(self) -> None:
        if not self.session_secret:
            raise RuntimeError(
                "SESSION_SECRET is not set. "
                "Set a long random SESSION_SECRET before starting the application."
            )

        pool = bool(self.cognito_user_pool_id)
        client = bool(self.cognito_client_id)
        if pool != client:
            raise RuntimeError(
                "Cognito is partially configured: both COGNITO_USER_POOL_ID and "
                "COGNITO_CLIENT_ID must be set together."
            )
        if pool and not self.aws_region:
            raise RuntimeError("Cognito is configured but AWS_REGION is not set.")

        if not self.cognito_configured():
            logger.warning("Cognito is not configured; sign-in and sign-up will fail")


@lru_cache
def get_settings() -> Settings:
    return Settings()
