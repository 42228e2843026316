from fastapi import APIRouter

from taskmanager.context import Users
from taskmanager.schemas.user import (
    AccountType,
    User,
    UserCreate,
    UserProfileResponse,
    UserUpdate,
)
from taskmanager.utils.auth import CurrentSession

router = APIRouter(prefix="/users/me", tags=["Users"])


def _profile_response(user: User) -> UserProfileResponse:
    return UserProfileResponse(
        user_id=user.user_id,
        email=user.email,
        name=user.name,
        account_type=user.account_type,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


@router.get("", response_model=UserProfileResponse, response_model_by_alias=True)
async def get_profile(session: CurrentSession, users: Users) -> UserProfileResponse:
    user = await users.get_user(session.user_id)
    if user is None:
        return UserProfileResponse(
            user_id=session.user_id,
            email=session.email,
            name=session.name,
            account_type=AccountType.INDIVIDUAL,
            persisted=False,
        )
    return _profile_response(user)


@router.patch("", response_model=UserProfileResponse, response_model_by_alias=True)
async def update_profile(
    data: UserUpdate,
    session: CurrentSession,
    users: Users,
) -> UserProfileResponse:
    await users.get_or_create_user(
        UserCreate(user_id=session.user_id, email=session.email, name=session.name)
    )
    user = await users.update_user(session.user_id, data)
    return _profile_response(user)
