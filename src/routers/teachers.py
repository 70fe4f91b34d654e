from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, Query, status
from src.auth import Permission, Principal, require_permissions, require_tenant
from src.db import supabase
from src.models.teachers import TeacherCreate, TeacherResponse, TeacherUpdate

router = APIRouter(prefix="/api/admin/teachers", tags=["teachers"])

_TEACHER_FIELDS = (
    "id, tenant_id, teacher_code, full_name, phone, salary, subjects, classes, "
    "status, created_at, updated_at"
)


def _to_response(row: dict, auth: Principal) -> TeacherResponse:
    # Salary is finance data.
    salary = row.get("salary") if Permission.ACCOUNTS_READ in auth.permissions else None
    return TeacherResponse(
        id=row["id"],
        teacher_code=row["teacher_code"],
        full_name=row["full_name"],
        phone=row.get("phone"),
        salary=salary,
        subjects=row.get("subjects") or [],
        classes=row.get("classes") or [],
        status=row["status"],
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


@router.get("/", response_model=list[TeacherResponse])
async def list_teachers(
    search: str | None = Query(None),
    status_filter: str | None = Query(None, alias="status"),
    auth: Principal = Depends(require_permissions(Permission.TEACHERS_READ)),
):
    """List teachers in the tenant."""
    tenant_id = require_tenant(auth)
    query = supabase.table("teachers").select(_TEACHER_FIELDS).eq("tenant_id", tenant_id)
    if status_filter:
        query = query.eq("status", status_filter)
    if search:
        query = query.ilike("full_name", f"%{search}%")
    rows = query.order("teacher_code").execute().data or []
    return [_to_response(row, auth) for row in rows]


@router.post("/", response_model=TeacherResponse, status_code=status.HTTP_201_CREATED)
async def create_teacher(
    data: TeacherCreate,
    auth: Principal = Depends(require_permissions(Permission.TEACHERS_CREATE)),
):
    """Create a teacher."""
    tenant_id = require_tenant(auth)
    existing = supabase.table("teachers").select("id").eq(
        "tenant_id", tenant_id
    ).eq("teacher_code", data.teacher_code).execute()
    if existing.data:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Teacher code already exists")

    if data.salary is not None and Permission.ACCOUNTS_MANAGE not in auth.permissions:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Permission required: {Permission.ACCOUNTS_MANAGE.value}",
        )

    insert_data = data.model_dump()
    insert_data["tenant_id"] = tenant_id
    insert_data["status"] = "active"
    result = supabase.table("teachers").insert(insert_data).execute()
    return _to_response(result.data[0], auth)


@router.get("/{teacher_id}", response_model=TeacherResponse)
async def get_teacher(
    teacher_id: str,
    auth: Principal = Depends(require_permissions(Permission.TEACHERS_READ)),
):
    """Get a teacher by ID."""
    result = supabase.table("teachers").select(_TEACHER_FIELDS).eq(
        "id", teacher_id
    ).eq("tenant_id", require_tenant(auth)).execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Teacher not found")
    return _to_response(result.data[0], auth)


@router.put("/{teacher_id}", response_model=TeacherResponse)
async def update_teacher(
    teacher_id: str,
    data: TeacherUpdate,
    auth: Principal = Depends(require_permissions(Permission.TEACHERS_UPDATE)),
):
    """Update a teacher. Changing salary also needs accounts:manage."""
    tenant_id = require_tenant(auth)
    update_data = data.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")
    if "salary" in update_data and Permission.ACCOUNTS_MANAGE not in auth.permissions:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Permission required: {Permission.ACCOUNTS_MANAGE.value}",
        )

    update_data["updated_at"] = datetime.now(timezone.utc).isoformat()
    result = supabase.table("teachers").update(update_data).eq(
        "id", teacher_id
    ).eq("tenant_id", tenant_id).execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Teacher not found")
    return _to_response(result.data[0], auth)


@router.delete("/{teacher_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_teacher(
    teacher_id: str,
    auth: Principal = Depends(require_permissions(Permission.TEACHERS_DELETE)),
):
    """Deactivate a teacher."""
    result = supabase.table("teachers").update({
        "status": "inactive",
        "updated_at": datetime.now(timezone.utc).isoformat(),
    }).eq("id", teacher_id).eq("tenant_id", require_tenant(auth)).execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Teacher not found")
    return None
