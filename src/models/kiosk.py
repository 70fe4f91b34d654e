from pydantic import BaseModel, Field
from datetime import datetime
from uuid import UUID


class KioskCredentials(BaseModel):
    student_code: str = Field(min_length=1)
    pin: str = Field(min_length=4, max_length=6)


class KioskPunchRequest(KioskCredentials):
    branch_id: UUID


class KioskStudent(BaseModel):
    student_id: str
    full_name: str
    student_code: str


class KioskAttendanceData(BaseModel):
    attendance_id: str
    student: KioskStudent
    checkin_time: datetime
    checkout_time: datetime | None = None
    duration_minutes: int | None = None
    branch_name: str | None = None


class KioskPunchResponse(BaseModel):
    success: bool = True
    message: str
    data: KioskAttendanceData


class KioskVerifyStudent(BaseModel):
    student_id: str
    full_name: str
    status: str
    currently_checked_in: bool


class KioskVerifyResponse(BaseModel):
    success: bool = True
    valid: bool
    student: KioskVerifyStudent | None = None
