from pydantic import BaseModel, EmailStr, Field
from datetime import date, datetime
from typing import Literal
from uuid import UUID

StudentStatus = Literal["active", "inactive", "graduated"]


class StudentCreate(BaseModel):
    student_code: str = Field(min_length=1, max_length=50)
    full_name: str = Field(min_length=1, max_length=255)
    branch_id: UUID
    pin: str | None = Field(default=None, pattern=r"^\d{4,6}$")
    phone: str | None = None
    email: EmailStr | None = None
    date_of_birth: date | None = None
    grade: str | None = None


class StudentUpdate(BaseModel):
    full_name: str | None = Field(default=None, min_length=1, max_length=255)
    phone: str | None = None
    email: EmailStr | None = None
    grade: str | None = None
    status: StudentStatus | None = None


class PinReset(BaseModel):
    new_pin: str = Field(pattern=r"^\d{4,6}$")


class StudentResponse(BaseModel):
    id: str
    branch_id: str
    student_code: str
    full_name: str
    phone: str | None = None
    email: str | None = None
    date_of_birth: date | None = None
    grade: str | None = None
    status: str
    has_pin: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


class StudentPage(BaseModel):
    data: list[StudentResponse]
    total: int
    page: int
    limit: int
