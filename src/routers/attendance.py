from datetime import date, datetime, time, timezone
from fastapi import APIRouter, Depends, HTTPException, Query, status
from src.auth import Permission, Principal, require_permissions, require_tenant
from src.db import supabase
from src.domain.attendance import duration_minutes, summarize_sessions
from src.models.attendance import AttendanceRecord, AttendanceReport, AttendanceSummary

router = APIRouter(prefix="/api/admin/attendance", tags=["attendance"])

_SESSION_FIELDS = (
    "id, tenant_id, branch_id, student_id, checkin_time, checkout_time, "
    "checkout_method, status"
)


def _day_bounds(day: date) -> tuple[str, str]:
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    end = datetime.combine(day, time.max, tzinfo=timezone.utc)
    return start.isoformat(), end.isoformat()


def _student_index(tenant_id: str) -> dict[str, dict]:
    result = supabase.table("students").select(
        "id, full_name, student_code"
    ).eq("tenant_id", tenant_id).execute()
    return {row["id"]: row for row in result.data or []}


def _to_record(row: dict, students: dict[str, dict]) -> AttendanceRecord:
    student = students.get(row["student_id"], {})
    minutes = None
    if row.get("checkout_time"):
        minutes = duration_minutes(row["checkin_time"], row["checkout_time"])
    return AttendanceRecord(
        attendance_id=row["id"],
        student={
            "student_id": row["student_id"],
            "full_name": student.get("full_name"),
            "student_code": student.get("student_code"),
        },
        branch_id=row.get("branch_id"),
        checkin_time=row["checkin_time"],
        checkout_time=row.get("checkout_time"),
        duration_minutes=minutes,
        checkout_method=row.get("checkout_method"),
        status=row["status"],
    )


@router.get("/report", response_model=AttendanceReport)
async def attendance_report(
    day: date | None = Query(None, alias="date"),
    date_from: date | None = Query(None, alias="from"),
    date_to: date | None = Query(None, alias="to"),
    branch_id: str | None = Query(None),
    student_id: str | None = Query(None),
    status_filter: str | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    auth: Principal = Depends(require_permissions(Permission.ATTENDANCE_READ)),
):
    """Attendance sessions in a window with a summary. `date` wins over from/to."""
    tenant_id = require_tenant(auth)
    if day:
        date_from = date_to = day

    query = supabase.table("attendance_sessions").select(_SESSION_FIELDS).eq("tenant_id", tenant_id)
    if date_from:
        query = query.gte("checkin_time", _day_bounds(date_from)[0])
    if date_to:
        query = query.lte("checkin_time", _day_bounds(date_to)[1])
    if branch_id:
        query = query.eq("branch_id", branch_id)
    if student_id:
        query = query.eq("student_id", student_id)
    if status_filter:
        query = query.eq("status", status_filter)

    rows = query.order("checkin_time", desc=True).execute().data or []
    students = _student_index(tenant_id)
    start = (page - 1) * limit
    return AttendanceReport(
        records=[_to_record(row, students) for row in rows[start:start + limit]],
        summary=AttendanceSummary(**summarize_sessions(rows)),
        total=len(rows),
        page=page,
        limit=limit,
    )


@router.get("/current", response_model=list[AttendanceRecord])
async def currently_checked_in(
    branch_id: str | None = Query(None),
    auth: Principal = Depends(require_permissions(Permission.ATTENDANCE_READ)),
):
    """Open sessions: students checked in and not yet checked out."""
    tenant_id = require_tenant(auth)
    query = supabase.table("attendance_sessions").select(_SESSION_FIELDS).eq(
        "tenant_id", tenant_id
    ).is_("checkout_time", "null")
    if branch_id:
        query = query.eq("branch_id", branch_id)
    rows = query.order("checkin_time").execute().data or []
    students = _student_index(tenant_id)
    return [_to_record(row, students) for row in rows]


@router.post("/{attendance_id}/checkout", response_model=AttendanceRecord)
async def manual_checkout(
    attendance_id: str,
    auth: Principal = Depends(require_permissions(Permission.ATTENDANCE_CREATE)),
):
    """Close an open session on behalf of a student who left without checking out."""
    tenant_id = require_tenant(auth)
    existing = supabase.table("attendance_sessions").select(_SESSION_FIELDS).eq(
        "id", attendance_id
    ).eq("tenant_id", tenant_id).execute()
    if not existing.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Attendance session not found")
    if existing.data[0].get("checkout_time"):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Session already checked out")

    checkout_time = datetime.now(timezone.utc)
    result = supabase.table("attendance_sessions").update({
        "checkout_time": checkout_time.isoformat(),
        "checkout_method": "manual",
        "duration_minutes": duration_minutes(existing.data[0]["checkin_time"], checkout_time),
        "status": "checked_out",
        "checked_out_by": auth.user_id,
    }).eq("id", attendance_id).eq("tenant_id", tenant_id).is_("checkout_time", "null").execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Session already checked out")
    return _to_record(result.data[0], _student_index(tenant_id))
