from pydantic import BaseModel
from datetime import datetime


class AttendanceStudent(BaseModel):
    student_id: str
    full_name: str | None = None
    student_code: str | None = None


class AttendanceRecord(BaseModel):
    attendance_id: str
    student: AttendanceStudent
    branch_id: str | None = None
    checkin_time: datetime
    checkout_time: datetime | None = None
    duration_minutes: int | None = None
    checkout_method: str | None = None
    status: str


class AttendanceSummary(BaseModel):
    total_sessions: int
    unique_students: int
    completed_sessions: int
    average_duration_minutes: int


class AttendanceReport(BaseModel):
    records: list[AttendanceRecord]
    summary: AttendanceSummary
    total: int
    page: int
    limit: int
