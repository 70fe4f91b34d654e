from pydantic import BaseModel, EmailStr, Field, field_validator
from datetime import datetime
from typing import Literal
from src.auth.permissions import normalize_role


RoleInput = Literal["super_admin", "admin", "manager", "staff", "viewer"]
UserStatus = Literal["active", "inactive"]


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    full_name: str = Field(min_length=1, max_length=255)
    role: RoleInput = "viewer"

    @field_validator("role", mode="before")
    @classmethod
    def _normalize_role(cls, value: str) -> str:
        return normalize_role(value)


class UserUpdate(BaseModel):
    full_name: str | None = Field(default=None, min_length=1, max_length=255)
    role: RoleInput | None = None
    status: UserStatus | None = None

    @field_validator("role", mode="before")
    @classmethod
    def _normalize_role(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return normalize_role(value)


class PasswordReset(BaseModel):
    new_password: str = Field(min_length=8)


class UserResponse(BaseModel):
    id: str
    email: str
    full_name: str | None
    role: str
    status: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
