from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UpdateNameRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Name is required")
        return cleaned


class UserTokenResponse(BaseModel):
    message: str
    user: UserResponse
    token: str
