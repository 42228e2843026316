import logging

import pytest

from taskmanager.config import Settings
from taskmanager.context import build_service_context
from taskmanager.services.user_store import DynamoDBUserStore


def _settings(**overrides) -> Settings:
    values = {
        "session_secret": "s3cret",
        "aws_region": "us-east-1",
        "cognito_user_pool_id": "us-east-1_Pool",
        "cognito_client_id": "client",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestValidateSecurity:
    def test_complete_configuration(self):
        _settings().validate_security()

    def test_missing_session_secret(self):
        with pytest.raises(RuntimeError, match="SESSION_SECRET"):
            _settings(session_secret=None).validate_security()

    @pytest.mark.parametrize(
        "overrides",
        [{"cognito_user_pool_id": None}, {"cognito_client_id": None}],
    )
    def test_partial_cognito_configuration(self, overrides):
        with pytest.raises(RuntimeError, match="partially configured"):
            _settings(**overrides).validate_security()

    def test_cognito_without_region(self, monkeypatch):
        monkeypatch.delenv("AWS_REGION", raising=False)
        monkeypatch.delenv("AWS_DEFAULT_REGION", raising=False)
        with pytest.raises(RuntimeError, match="AWS_REGION"):
            _settings(aws_region=None).validate_security()

    def test_cognito_not_configured_warns(self, caplog):
        settings = _settings(cognito_user_pool_id=None, cognito_client_id=None)
        with caplog.at_level(logging.WARNING, logger="taskmanager.config"):
            settings.validate_security()
        assert "Cognito is not configured" in caplog.text


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("DYNAMODB_USERS_TABLE", raising=False)
        settings = Settings(_env_file=None)
        assert settings.app_name == "TaskManager Pro"
        assert settings.dynamodb_users_table == "TaskManagerPro-Users"
        assert settings.cognito_verify_id_token is True
        assert not settings.is_production

    def test_default_region_alias(self, monkeypatch):
        monkeypatch.delenv("AWS_REGION", raising=False)
        monkeypatch.setenv("AWS_DEFAULT_REGION", "eu-west-1")
        assert Settings(_env_file=None).aws_region == "eu-west-1"

    def test_issuer_url(self):
        assert _settings().cognito_issuer_url == (
            "https://cognito-idp.us-east-1.amazonaws.com/us-east-1_Pool"
        )

    def test_production(self):
        assert _settings(environment="Production").is_production


def test_service_context_uses_dynamodb():
    services = build_service_context(_settings(dynamodb_users_table="Users-Test"))
    assert isinstance(services.user_store, DynamoDBUserStore)
    assert services.user_store.table_name == "Users-Test"
    assert services.user_store.region == "us-east-1"
