from pydantic import BaseModel, Field
from datetime import datetime
from typing import Literal


class TeacherCreate(BaseModel):
    teacher_code: str = Field(min_length=1, max_length=50)
    full_name: str = Field(min_length=1, max_length=255)
    phone: str | None = None
    salary: float | None = Field(default=None, ge=0)
    subjects: list[str] = []
    classes: list[str] = []


class TeacherUpdate(BaseModel):
    full_name: str | None = Field(default=None, min_length=1, max_length=255)
    phone: str | None = None
    salary: float | None = Field(default=None, ge=0)
    subjects: list[str] | None = None
    classes: list[str] | None = None
    status: Literal["active", "inactive"] | None = None


class TeacherResponse(BaseModel):
    id: str
    teacher_code: str
    full_name: str
    phone: str | None = None
    salary: float | None = None
    subjects: list[str] = []
    classes: list[str] = []
    status: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
