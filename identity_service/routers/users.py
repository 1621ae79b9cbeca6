from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from identity_service.routers.dependencies import (
    get_auth_service,
    get_current_user,
    get_user_store,
)
from identity_service.schemas.users import (
    UpdateNameRequest,
    UserResponse,
    UserTokenResponse,
)
from identity_service.services.auth import AuthService
from identity_service.services.tokens import TokenError
from identity_service.services.users import UserStore

router = APIRouter(tags=["users"])


@router.get("/me", response_model=UserResponse)
def get_me(user: UserResponse = Depends(get_current_user)) -> UserResponse:
    return user


@router.get("/user/all", response_model=list[UserResponse])
def list_users(
    _: UserResponse = Depends(get_current_user),
    users: UserStore = Depends(get_user_store),
) -> list[UserResponse]:
    return users.list_users()


@router.get("/user/{user_id}", response_model=Optional[UserResponse])
def get_user(
    user_id: int, users: UserStore = Depends(get_user_store)
) -> Optional[UserResponse]:
    return users.get_user(user_id)


@router.post("/update/user", response_model=UserTokenResponse)
def update_name(
    payload: UpdateNameRequest,
    user: UserResponse = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
) -> UserTokenResponse:
    try:
        session = auth.update_name(user.id, payload.name)
    except TokenError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc
    return UserTokenResponse(
        message="User Updated",
        user=session.user,
        token=session.token,
    )
