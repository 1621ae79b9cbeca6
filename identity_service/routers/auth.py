from fastapi import APIRouter, Depends, HTTPException, status

from identity_service.routers.dependencies import get_auth_service
from identity_service.schemas.auth import LoginRequest, MessageResponse, VerifyRequest
from identity_service.schemas.users import UserTokenResponse
from identity_service.services.auth import AuthService
from identity_service.services.tokens import TokenError

router = APIRouter(tags=["auth"])


@router.post("/login", response_model=MessageResponse)
def login(
    payload: LoginRequest, auth: AuthService = Depends(get_auth_service)
) -> MessageResponse:
    return MessageResponse(message=auth.request_login(payload.email))


@router.post("/verify", response_model=UserTokenResponse)
def verify(
    payload: VerifyRequest, auth: AuthService = Depends(get_auth_service)
) -> UserTokenResponse:
    try:
        session = auth.verify_login(payload.email, payload.otp)
    except TokenError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc
    return UserTokenResponse(
        message="User Verified",
        user=session.user,
        token=session.token,
    )
