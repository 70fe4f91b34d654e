from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from uuid import UUID


class _CamelModel(BaseModel):
    """Accepts both camelCase (admin portal) and snake_case keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DeviceRegister(_CamelModel):
    serial_number: str = Field(max_length=100)
    name: str = Field(max_length=255)
    model: str | None = Field(default=None, max_length=100)
    location: str | None = Field(default=None, max_length=255)
    ip_address: str | None = Field(default=None, max_length=45)
    timezone_offset: float | None = None


class DeviceUpdate(_CamelModel):
    name: str | None = Field(default=None, max_length=255)
    model: str | None = Field(default=None, max_length=100)
    location: str | None = Field(default=None, max_length=255)
    ip_address: str | None = Field(default=None, max_length=45)
    status: str | None = None
    timezone_offset: float | None = None


class DeviceResponse(BaseModel):
    id: str
    serial_number: str
    name: str
    model: str | None = None
    location: str | None = None
    ip_address: str | None = None
    timezone_offset: float | None = None
    status: str
    last_seen_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class EnrollStudent(_CamelModel):
    device_id: UUID
    student_id: UUID
    device_user_id: str = Field(min_length=1, max_length=50)


class BulkEnrollItem(_CamelModel):
    student_id: UUID
    device_user_id: str = Field(min_length=1, max_length=50)


class BulkEnroll(_CamelModel):
    device_id: UUID
    enrollments: list[BulkEnrollItem]


class EnrollmentResponse(BaseModel):
    id: str
    device_id: str
    student_id: str
    device_user_id: str
    status: str
    created_at: datetime | None = None


class BulkEnrollResult(BaseModel):
    student_id: str
    device_user_id: str
    status: str  # "enrolled" | "skipped" | "failed"
    enrollment_id: str | None = None
    reason: str | None = None


class BulkEnrollResponse(BaseModel):
    device_id: str
    enrolled: int
    skipped: int
    results: list[BulkEnrollResult]
