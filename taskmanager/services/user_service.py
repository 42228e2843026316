import logging
from datetime import datetime, timezone
from typing import Optional

from pydantic import ValidationError

from taskmanager.schemas.user import AccountType, User, UserCreate, UserUpdate
from taskmanager.services.user_store import StoreConfigurationError, StoreError, UserStore

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class UserService:
    def __init__(self, store: UserStore):
        self.store = store

    async def get_user(self, user_id: str) -> Optional[User]:
        """
        Get a user by their identity provider subject.

        A store that is not configured (e.g. no region at build time) is
        reported as "not found" rather than as a failure.
        """
        try:
            item = await self.store.get_item(user_id)
        except StoreConfigurationError as e:
            logger.warning("User store not configured, treating %s as not found: %s", user_id, e)
            return None
        except StoreError as e:
            logger.error("Error getting user %s: %s", user_id, e)
            raise UserServiceError("Failed to get user") from e

        if item is None:
            return None
        try:
            return User.model_validate(item)
        except ValidationError as e:
            logger.error("Stored user %s is malformed: %s", user_id, e)
            raise UserServiceError("Failed to get user") from e

    async def create_user(self, user_data: UserCreate) -> User:
        """
        Create a user record unless one already exists.

        The attempted record is returned in both cases, so concurrent first
        sign-ins of the same user agree on the result.
        """
        now = _now_iso()
        user = User(
            user_id=user_data.user_id,
            email=user_data.email,
            name=user_data.name,
            account_type=user_data.account_type or AccountType.INDIVIDUAL,
            created_at=now,
            updated_at=now,
        )

        try:
            created = await self.store.put_item_if_absent(user.to_item())
        except StoreError as e:
            logger.error("Error creating user %s: %s", user.user_id, e)
            raise UserServiceError("Failed to create user") from e

        if not created:
            logger.info("User %s already exists, keeping the stored record", user.user_id)
        return user

    async def update_user(self, user_id: str, user_data: UserUpdate) -> User:
        """Merge the provided fields and refresh ``updatedAt``."""
        fields = user_data.model_dump(
            mode="json", by_alias=True, exclude_unset=True, exclude_none=True
        )
        fields["updatedAt"] = _now_iso()

        try:
            item = await self.store.update_item(user_id, fields)
        except StoreError as e:
            logger.error("Error updating user %s: %s", user_id, e)
            raise UserServiceError("Failed to update user") from e

        if item is None:
            raise UserNotFoundError(f"User {user_id} not found")
        return User.model_validate(item)

    async def get_or_create_user(self, user_data: UserCreate) -> User:
        existing = await self.get_user(user_data.user_id)
        if existing is not None:
            return existing
        return await self.create_user(user_data)


class UserServiceError(Exception):
    pass


class UserNotFoundError(Exception):
    pass
