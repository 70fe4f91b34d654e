from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, Query, status
from src.auth import Permission, Principal, require_permissions, require_tenant
from src.auth.passwords import hash_password
from src.db import supabase
from src.models.students import (
    PinReset,
    StudentCreate,
    StudentPage,
    StudentResponse,
    StudentUpdate,
)

router = APIRouter(prefix="/api/admin/students", tags=["students"])

_STUDENT_FIELDS = (
    "id, tenant_id, branch_id, student_code, full_name, phone, email, date_of_birth, "
    "grade, status, pin_hash, created_at, updated_at"
)


def _to_response(row: dict) -> StudentResponse:
    return StudentResponse(
        id=row["id"],
        branch_id=row["branch_id"],
        student_code=row["student_code"],
        full_name=row["full_name"],
        phone=row.get("phone"),
        email=row.get("email"),
        date_of_birth=row.get("date_of_birth"),
        grade=row.get("grade"),
        status=row["status"],
        has_pin=bool(row.get("pin_hash")),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def _get_student_row(student_id: str, tenant_id: str) -> dict:
    result = supabase.table("students").select(_STUDENT_FIELDS).eq(
        "id", student_id
    ).eq("tenant_id", tenant_id).execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found")
    return result.data[0]


@router.get("/", response_model=StudentPage)
async def list_students(
    search: str | None = Query(None),
    status_filter: str | None = Query(None, alias="status"),
    branch_id: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    auth: Principal = Depends(require_permissions(Permission.STUDENTS_READ)),
):
    """List students in the tenant."""
    tenant_id = require_tenant(auth)
    query = supabase.table("students").select(_STUDENT_FIELDS).eq("tenant_id", tenant_id)
    if status_filter:
        query = query.eq("status", status_filter)
    if branch_id:
        query = query.eq("branch_id", branch_id)
    if search:
        query = query.ilike("full_name", f"%{search}%")

    rows = query.order("student_code").execute().data or []
    start = (page - 1) * limit
    return StudentPage(
        data=[_to_response(row) for row in rows[start:start + limit]],
        total=len(rows),
        page=page,
        limit=limit,
    )


@router.post("/", response_model=StudentResponse, status_code=status.HTTP_201_CREATED)
async def create_student(
    data: StudentCreate,
    auth: Principal = Depends(require_permissions(Permission.STUDENTS_CREATE)),
):
    """Create a student. The kiosk PIN is stored hashed."""
    tenant_id = require_tenant(auth)

    branch_check = supabase.table("branches").select("id").eq(
        "id", str(data.branch_id)
    ).eq("tenant_id", tenant_id).execute()
    if not branch_check.data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Branch not found")

    existing = supabase.table("students").select("id").eq(
        "tenant_id", tenant_id
    ).eq("student_code", data.student_code).execute()
    if existing.data:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Student code already exists")

    insert_data = {
        "tenant_id": tenant_id,
        "branch_id": str(data.branch_id),
        "student_code": data.student_code,
        "full_name": data.full_name,
        "phone": data.phone,
        "email": data.email,
        "date_of_birth": data.date_of_birth.isoformat() if data.date_of_birth else None,
        "grade": data.grade,
        "pin_hash": hash_password(data.pin) if data.pin else None,
        "status": "active",
        "created_by": auth.user_id,
    }
    result = supabase.table("students").insert(insert_data).execute()
    return _to_response(result.data[0])


@router.get("/{student_id}", response_model=StudentResponse)
async def get_student(
    student_id: str,
    auth: Principal = Depends(require_permissions(Permission.STUDENTS_READ)),
):
    """Get a student by ID."""
    return _to_response(_get_student_row(student_id, require_tenant(auth)))


@router.put("/{student_id}", response_model=StudentResponse)
async def update_student(
    student_id: str,
    data: StudentUpdate,
    auth: Principal = Depends(require_permissions(Permission.STUDENTS_UPDATE)),
):
    """Update a student."""
    tenant_id = require_tenant(auth)
    update_data = data.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    update_data["updated_at"] = datetime.now(timezone.utc).isoformat()
    result = supabase.table("students").update(update_data).eq(
        "id", student_id
    ).eq("tenant_id", tenant_id).execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found")
    return _to_response(result.data[0])


@router.post("/{student_id}/reset-pin", status_code=status.HTTP_204_NO_CONTENT)
async def reset_pin(
    student_id: str,
    data: PinReset,
    auth: Principal = Depends(require_permissions(Permission.STUDENTS_UPDATE)),
):
    """Replace the student's kiosk PIN."""
    tenant_id = require_tenant(auth)
    result = supabase.table("students").update({
        "pin_hash": hash_password(data.new_pin),
        "updated_at": datetime.now(timezone.utc).isoformat(),
    }).eq("id", student_id).eq("tenant_id", tenant_id).execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found")
    return None


@router.delete("/{student_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_student(
    student_id: str,
    auth: Principal = Depends(require_permissions(Permission.STUDENTS_DELETE)),
):
    """Deactivate a student. Attendance history is kept."""
    tenant_id = require_tenant(auth)
    result = supabase.table("students").update({
        "status": "inactive",
        "updated_at": datetime.now(timezone.utc).isoformat(),
    }).eq("id", student_id).eq("tenant_id", tenant_id).execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found")
    return None
