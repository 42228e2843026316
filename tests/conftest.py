import os

# Dummy AWS credentials so boto3 clients can be built for stubbed tests
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("SESSION_SECRET", "test-session-secret")

from collections.abc import AsyncGenerator
from typing import Any, Optional
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from taskmanager.config import Settings
from taskmanager.context import ServiceContext
from taskmanager.main import create_app
from taskmanager.schemas.auth import SessionPayload
from taskmanager.schemas.user import User
from taskmanager.services.identity_service import (
    IdentityClaims,
    IdentityProviderError,
    SignUpResult,
)
from taskmanager.services.user_store import StoreError
from taskmanager.utils.session import SESSION_COOKIE_NAME, create_session

TEST_SECRET = "test-session-secret"
TEST_PASSWORD = "correct-horse-battery"


class FakeIdentityProvider:
    """In-memory stand-in for the Cognito user pool."""

    def __init__(self) -> None:
        self.accounts: dict[str, dict[str, Any]] = {}
        self.reset_codes: dict[str, str] = {}

    def add_account(self, email: str, password: str, name: Optional[str] = None) -> str:
        sub = f"sub-{uuid4()}"
        self.accounts[email] = {"sub": sub, "password": password, "name": name}
        return sub

    async def sign_up(self, email: str, password: str, name: Optional[str] = None) -> SignUpResult:
        if email in self.accounts:
            raise IdentityProviderError("An account with the given email already exists.")
        sub = self.add_account(email, password, name)
        return SignUpResult(user_sub=sub, user_confirmed=False)

    async def sign_in(self, email: str, password: str) -> IdentityClaims:
        account = self.accounts.get(email)
        if account is None or account["password"] != password:
            raise IdentityProviderError("Incorrect username or password.")
        return IdentityClaims(subject=account["sub"], email=email, name=account["name"])

    async def forgot_password(self, email: str) -> None:
        if email not in self.accounts:
            raise IdentityProviderError("Username/client id combination not found.")
        self.reset_codes[email] = "123456"

    async def confirm_forgot_password(self, email: str, code: str, new_password: str) -> None:
        if self.reset_codes.get(email) != code:
            raise IdentityProviderError("Invalid verification code provided, please try again.")
        self.accounts[email]["password"] = new_password
        del self.reset_codes[email]


class InMemoryUserStore:
    """User store backed by a dict, with the same conditional-write rules as DynamoDB."""

    def __init__(self) -> None:
        self._items: dict[str, dict[str, Any]] = {}

    async def get_item(self, user_id: str) -> dict[str, Any] | None:
        item = self._items.get(user_id)
        return dict(item) if item is not None else None

    async def put_item_if_absent(self, item: dict[str, Any]) -> bool:
        # No await between check and write, so this is atomic on the event loop.
        if item["userId"] in self._items:
            return False
        self._items[item["userId"]] = dict(item)
        return True

    async def update_item(self, user_id: str, fields: dict[str, Any]) -> dict[str, Any] | None:
        item = self._items.get(user_id)
        if item is None:
            return None
        item.update(fields)
        return dict(item)

    def __len__(self) -> int:
        return len(self._items)


class FailingUserStore:
    """User store whose every call fails."""

    async def get_item(self, user_id: str) -> dict[str, Any] | None:
        raise StoreError("service unavailable")

    async def put_item_if_absent(self, item: dict[str, Any]) -> bool:
        raise StoreError("service unavailable")

    async def update_item(self, user_id: str, fields: dict[str, Any]) -> dict[str, Any] | None:
        raise StoreError("service unavailable")


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        session_secret=TEST_SECRET,
        environment="test",
        aws_region="us-east-1",
        cognito_user_pool_id="us-east-1_TestPool",
        cognito_client_id="test-client-id",
        cognito_verify_id_token=False,
    )


@pytest.fixture
def identity() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def user_store() -> InMemoryUserStore:
    return InMemoryUserStore()


@pytest.fixture
def services(settings: Settings, identity, user_store) -> ServiceContext:
    return ServiceContext(settings=settings, identity=identity, user_store=user_store)


@pytest_asyncio.fixture(scope="function")
async def client(services: ServiceContext) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client bound to in-memory services."""
    app = create_app(services=services)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def session_payload() -> SessionPayload:
    unique_id = uuid4()
    return SessionPayload(
        user_id=f"test-user-{unique_id}",
        email=f"test-{unique_id}@example.com",
        name="Test User",
    )


@pytest.fixture
def session_token(session_payload: SessionPayload, settings: Settings) -> str:
    return create_session(session_payload, settings)


@pytest.fixture
def signed_in_client(client: AsyncClient, session_token: str) -> AsyncClient:
    client.cookies.set(SESSION_COOKIE_NAME, session_token)
    return client


@pytest_asyncio.fixture
async def test_user(user_store: InMemoryUserStore, session_payload: SessionPayload) -> User:
    """Store a user record matching the signed-in session."""
    user = User(
        user_id=session_payload.user_id,
        email=session_payload.email,
        name="Stored Name",
        account_type="team",
        created_at="2026-03-04T10:00:00.000Z",
        updated_at="2026-03-05T11:30:00.000Z",
    )
    await user_store.put_item_if_absent(user.to_item())
    return user


@pytest.fixture
def failing_store() -> FailingUserStore:
    return FailingUserStore()
