from fastapi import Depends, Header, HTTPException, Request, status

from identity_service.container import Services
from identity_service.schemas.users import UserResponse
from identity_service.services.auth import AuthService
from identity_service.services.tokens import TokenError
from identity_service.services.users import UserStore


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_auth_service(services: Services = Depends(get_services)) -> AuthService:
    return services.auth


def get_user_store(services: Services = Depends(get_services)) -> UserStore:
    return services.users


def get_current_user(
    authorization: str | None = Header(default=None),
    services: Services = Depends(get_services),
) -> UserResponse:
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Please login - No auth header",
        )
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Authorization header",
        )
    try:
        return services.issuer.verify(token)
    except TokenError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc
