from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, Query, status
from src.auth import Permission, Principal, require_permissions, require_tenant
from src.db import supabase
from src.models.biometric import (
    BulkEnroll,
    BulkEnrollResponse,
    BulkEnrollResult,
    DeviceRegister,
    DeviceResponse,
    DeviceUpdate,
    EnrollmentResponse,
    EnrollStudent,
)
from src.observability import log_event

router = APIRouter(prefix="/api/admin/biometric", tags=["biometric"])

_DEFAULT_TIMEZONE_OFFSET_MINUTES = 0


def _get_device(device_id: str, tenant_id: str) -> dict:
    result = supabase.table("biometric_devices").select("*").eq(
        "id", device_id
    ).eq("tenant_id", tenant_id).execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Device not found")
    return result.data[0]


def _student_in_tenant(student_id: str, tenant_id: str) -> bool:
    result = supabase.table("students").select("id").eq(
        "id", student_id
    ).eq("tenant_id", tenant_id).execute()
    return bool(result.data)


def _enrollment_conflict(device_id: str, student_id: str, device_user_id: str) -> bool:
    """True when the student or the device user id is already taken on this device."""
    by_student = supabase.table("biometric_enrollments").select("id").eq(
        "device_id", device_id
    ).eq("student_id", student_id).execute()
    if by_student.data:
        return True
    by_user_id = supabase.table("biometric_enrollments").select("id").eq(
        "device_id", device_id
    ).eq("device_user_id", device_user_id).execute()
    return bool(by_user_id.data)


def _insert_enrollment(device_id: str, student_id: str, device_user_id: str) -> dict:
    result = supabase.table("biometric_enrollments").insert({
        "device_id": device_id,
        "student_id": student_id,
        "device_user_id": device_user_id,
        "status": "active",
    }).execute()
    return result.data[0]


# --- Devices ---

@router.get("/devices", response_model=list[DeviceResponse])
async def list_devices(auth: Principal = Depends(require_permissions(Permission.ATTENDANCE_READ))):
    """List biometric devices registered to the tenant."""
    result = supabase.table("biometric_devices").select("*").eq(
        "tenant_id", require_tenant(auth)
    ).order("created_at", desc=True).execute()
    return result.data


@router.get("/devices/{device_id}", response_model=DeviceResponse)
async def get_device(
    device_id: str,
    auth: Principal = Depends(require_permissions(Permission.ATTENDANCE_READ)),
):
    return _get_device(device_id, require_tenant(auth))


@router.post("/devices", response_model=DeviceResponse, status_code=status.HTTP_201_CREATED)
async def register_device(
    data: DeviceRegister,
    auth: Principal = Depends(require_permissions(Permission.ATTENDANCE_CREATE)),
):
    """Register a device. Serial numbers are unique across all tenants."""
    tenant_id = require_tenant(auth)
    existing = supabase.table("biometric_devices").select("id").eq(
        "serial_number", data.serial_number
    ).execute()
    if existing.data:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Device with this serial number already exists",
        )

    insert_data = data.model_dump()
    if insert_data["timezone_offset"] is None:
        insert_data["timezone_offset"] = _DEFAULT_TIMEZONE_OFFSET_MINUTES
    insert_data["tenant_id"] = tenant_id
    insert_data["status"] = "active"
    result = supabase.table("biometric_devices").insert(insert_data).execute()
    device = result.data[0]
    log_event(
        "biometric_device_registered",
        tenant_id=tenant_id,
        device_id=device["id"],
        serial_number=data.serial_number,
    )
    return device


@router.put("/devices/{device_id}", response_model=DeviceResponse)
async def update_device(
    device_id: str,
    data: DeviceUpdate,
    auth: Principal = Depends(require_permissions(Permission.ATTENDANCE_CREATE)),
):
    tenant_id = require_tenant(auth)
    update_data = data.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    update_data["updated_at"] = datetime.now(timezone.utc).isoformat()
    result = supabase.table("biometric_devices").update(update_data).eq(
        "id", device_id
    ).eq("tenant_id", tenant_id).execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Device not found")
    return result.data[0]


@router.delete("/devices/{device_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_device(
    device_id: str,
    auth: Principal = Depends(require_permissions(Permission.ATTENDANCE_CREATE)),
):
    tenant_id = require_tenant(auth)
    _get_device(device_id, tenant_id)
    supabase.table("biometric_enrollments").delete().eq("device_id", device_id).execute()
    supabase.table("biometric_devices").delete().eq("id", device_id).eq("tenant_id", tenant_id).execute()
    return None


# --- Enrollments ---

@router.get("/enrollments", response_model=list[EnrollmentResponse])
async def list_enrollments(
    device_id: str | None = Query(None, alias="deviceId"),
    auth: Principal = Depends(require_permissions(Permission.STUDENTS_READ)),
):
    """List enrollments across the tenant's devices, optionally for one device."""
    tenant_id = require_tenant(auth)
    if device_id:
        device_ids = [_get_device(device_id, tenant_id)["id"]]
    else:
        devices = supabase.table("biometric_devices").select("id").eq("tenant_id", tenant_id).execute()
        device_ids = [row["id"] for row in devices.data or []]

    enrollments: list[dict] = []
    for current_id in device_ids:
        result = supabase.table("biometric_enrollments").select("*").eq("device_id", current_id).execute()
        enrollments.extend(result.data or [])
    return enrollments


@router.post("/enroll", response_model=EnrollmentResponse, status_code=status.HTTP_201_CREATED)
async def enroll_student(
    data: EnrollStudent,
    auth: Principal = Depends(require_permissions(Permission.STUDENTS_UPDATE)),
):
    """Map a student to a user id on a device."""
    tenant_id = require_tenant(auth)
    device_id, student_id = str(data.device_id), str(data.student_id)
    _get_device(device_id, tenant_id)
    if not _student_in_tenant(student_id, tenant_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found")
    if _enrollment_conflict(device_id, student_id, data.device_user_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Student or device user ID already enrolled on this device",
        )

    enrollment = _insert_enrollment(device_id, student_id, data.device_user_id)
    log_event(
        "biometric_student_enrolled",
        tenant_id=tenant_id,
        device_id=device_id,
        student_id=student_id,
        device_user_id=data.device_user_id,
    )
    return enrollment


@router.post("/enroll/bulk", response_model=BulkEnrollResponse)
async def bulk_enroll(
    data: BulkEnroll,
    auth: Principal = Depends(require_permissions(Permission.STUDENTS_UPDATE)),
):
    """Enroll several students on one device. Conflicts are skipped, not fatal."""
    tenant_id = require_tenant(auth)
    device_id = str(data.device_id)
    _get_device(device_id, tenant_id)

    results: list[BulkEnrollResult] = []
    for item in data.enrollments:
        student_id = str(item.student_id)
        if not _student_in_tenant(student_id, tenant_id):
            results.append(BulkEnrollResult(
                student_id=student_id,
                device_user_id=item.device_user_id,
                status="failed",
                reason="Student not found",
            ))
            continue
        if _enrollment_conflict(device_id, student_id, item.device_user_id):
            results.append(BulkEnrollResult(
                student_id=student_id,
                device_user_id=item.device_user_id,
                status="skipped",
                reason="Already enrolled",
            ))
            continue
        enrollment = _insert_enrollment(device_id, student_id, item.device_user_id)
        results.append(BulkEnrollResult(
            student_id=student_id,
            device_user_id=item.device_user_id,
            status="enrolled",
            enrollment_id=enrollment["id"],
        ))

    enrolled = sum(1 for r in results if r.status == "enrolled")
    log_event("biometric_bulk_enrolled", tenant_id=tenant_id, device_id=device_id, enrolled=enrolled)
    return BulkEnrollResponse(
        device_id=device_id,
        enrolled=enrolled,
        skipped=sum(1 for r in results if r.status == "skipped"),
        results=results,
    )


@router.delete("/enroll/{enrollment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_enrollment(
    enrollment_id: str,
    auth: Principal = Depends(require_permissions(Permission.STUDENTS_UPDATE)),
):
    tenant_id = require_tenant(auth)
    result = supabase.table("biometric_enrollments").select("id, device_id").eq("id", enrollment_id).execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Enrollment not found")
    try:
        _get_device(result.data[0]["device_id"], tenant_id)
    except HTTPException as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Enrollment not found") from exc
    supabase.table("biometric_enrollments").delete().eq("id", enrollment_id).execute()
    return None
