from pydantic import BaseModel, EmailStr, Field, field_validator
from datetime import datetime
from typing import Literal

TenantStatus = Literal["active", "suspended", "inactive"]


class TenantCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    code: str = Field(min_length=3, max_length=50)
    admin_email: EmailStr
    admin_password: str = Field(min_length=8)
    admin_full_name: str = Field(min_length=1, max_length=255)

    @field_validator("code")
    @classmethod
    def _upper_code(cls, value: str) -> str:
        return value.strip().upper()


class TenantUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    status: TenantStatus | None = None
    settings: dict | None = None


class TenantStatusUpdate(BaseModel):
    status: TenantStatus


class TenantResponse(BaseModel):
    id: str
    code: str
    name: str
    status: str
    settings: dict | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TenantCreateResponse(BaseModel):
    company: TenantResponse
    branch_id: str
    admin_user_id: str
    admin_email: str


class TenantPage(BaseModel):
    data: list[TenantResponse]
    total: int
    page: int
    limit: int


class GlobalStats(BaseModel):
    total_companies: int
    active_companies: int
    total_students: int
    total_users: int
