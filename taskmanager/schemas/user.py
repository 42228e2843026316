from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class AccountType(str, Enum):
    INDIVIDUAL = "individual"
    TEAM = "team"
    ENTERPRISE = "enterprise"


class UserRecordModel(BaseModel):
    """Base for models stored or sent with camelCase attribute names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        validate_default=True,
    )


class User(UserRecordModel):
    user_id: str = Field(..., min_length=1)  # Identity provider subject (sub)
    email: str
    name: str | None = None
    account_type: AccountType = AccountType.INDIVIDUAL
    created_at: str  # ISO-8601
    updated_at: str  # ISO-8601

    def to_item(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class UserCreate(UserRecordModel):
    user_id: str = Field(..., min_length=1)
    email: str
    name: str | None = None
    account_type: AccountType | None = None


class UserUpdate(UserRecordModel):
    # Omitted fields stay None and are left out of the merge; only explicit nulls are rejected.
    model_config = ConfigDict(validate_default=False)

    name: str | None = Field(None, max_length=100)
    account_type: AccountType | None = None

    @field_validator("name", "account_type", mode="before")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("Field cannot be null")
        return v


class UserProfileResponse(UserRecordModel):
    user_id: str
    email: str
    name: str | None = None
    account_type: AccountType
    created_at: str | None = None
    updated_at: str | None = None
    persisted: bool = True
