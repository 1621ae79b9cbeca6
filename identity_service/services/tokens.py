from datetime import datetime, timedelta, timezone

import jwt
from pydantic import ValidationError

from identity_service.schemas.users import UserResponse


class TokenError(ValueError):
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionIssuer:
    def __init__(self, secret: str, algorithm: str = "HS256", expire_days: int = 15) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._expire_days = expire_days

    def issue(self, user: UserResponse) -> str:
        if not self._secret:
            raise TokenError("JWT secret is not configured")
        now = _utcnow()
        expires_at = now + timedelta(days=self._expire_days)
        payload = {
            "user": user.model_dump(mode="json"),
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> UserResponse:
        if not token:
            raise TokenError("Token is missing")
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError as exc:
            raise TokenError("Token has expired") from exc
        except jwt.InvalidTokenError as exc:
            raise TokenError("Invalid token") from exc
        user = payload.get("user")
        if not isinstance(user, dict):
            raise TokenError("Token is missing user")
        try:
            return UserResponse(**user)
        except ValidationError as exc:
            raise TokenError("Invalid token user") from exc
