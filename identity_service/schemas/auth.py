from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator


class LoginRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        cleaned = value.strip()
        local, _, domain = cleaned.partition("@")
        if not local or not domain:
            raise ValueError("A valid email address is required")
        return cleaned


class MessageResponse(BaseModel):
    message: str


# Missing fields are reported by the auth service as a 400, not as a 422.
# A numeric otp is passed through and never matches the stored string code.
class VerifyRequest(BaseModel):
    email: Optional[str] = Field(default=None, max_length=255)
    otp: Optional[Union[str, int]] = None
