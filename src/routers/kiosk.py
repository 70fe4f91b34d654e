import hmac
import logging
from datetime import datetime, timezone
from fastapi import APIRouter, Header, Request, status
from src.auth.passwords import verify_password
from src.config import settings
from src.db import supabase
from src.domain.attendance import checkout_too_soon, duration_minutes
from src.domain.errors import KioskError
from src.models.kiosk import (
    KioskCredentials,
    KioskPunchRequest,
    KioskPunchResponse,
    KioskVerifyResponse,
)
from src.observability import incr_metric, log_event

router = APIRouter(prefix="/api/kiosk", tags=["kiosk"])

_INVALID_CREDENTIALS = ("INVALID_CREDENTIALS", "Student ID or PIN incorrect")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _load_branch(branch_id: str) -> dict | None:
    result = supabase.table("branches").select(
        "id, tenant_id, name, status, kiosk_secret"
    ).eq("id", branch_id).execute()
    if not result.data:
        return None
    return result.data[0]


def _load_tenant(tenant_id: str) -> dict | None:
    result = supabase.table("tenants").select("id, status").eq("id", tenant_id).execute()
    if not result.data:
        return None
    return result.data[0]


def _authorize_kiosk(branch_id: str, kiosk_secret: str | None) -> dict:
    """Check the terminal secret for the branch and return the branch row."""
    branch = _load_branch(branch_id)
    expected = (branch or {}).get("kiosk_secret") or settings.kiosk_secret_key
    if not kiosk_secret or not expected or not hmac.compare_digest(kiosk_secret, expected):
        raise KioskError(
            "INVALID_KIOSK_SECRET",
            "Invalid kiosk secret",
            http_status=status.HTTP_401_UNAUTHORIZED,
        )
    if not branch:
        raise KioskError("BRANCH_NOT_FOUND", "Branch not found", http_status=status.HTTP_404_NOT_FOUND)
    if branch.get("status") != "active":
        raise KioskError("BRANCH_INACTIVE", "This kiosk is disabled", http_status=status.HTTP_403_FORBIDDEN)

    tenant = _load_tenant(branch["tenant_id"])
    if not tenant or tenant.get("status") != "active":
        raise KioskError(
            "TENANT_INACTIVE",
            "Company account is inactive. Please contact support.",
            http_status=status.HTTP_403_FORBIDDEN,
        )
    return branch


def _find_student(tenant_id: str, student_code: str) -> dict | None:
    result = supabase.table("students").select(
        "id, tenant_id, branch_id, student_code, full_name, pin_hash, status"
    ).eq("tenant_id", tenant_id).eq("student_code", student_code).execute()
    if not result.data:
        return None
    return result.data[0]


def _authenticate_student(tenant_id: str, creds: KioskCredentials) -> dict:
    student = _find_student(tenant_id, creds.student_code)
    if not student or not verify_password(creds.pin, student.get("pin_hash")):
        code, message = _INVALID_CREDENTIALS
        raise KioskError(code, message, http_status=status.HTTP_401_UNAUTHORIZED)
    return student


def _open_session(student_id: str) -> dict | None:
    result = supabase.table("attendance_sessions").select(
        "id, checkin_time, branch_id"
    ).eq("student_id", student_id).is_("checkout_time", "null").execute()
    if not result.data:
        return None
    return result.data[0]


def _audit(
    *,
    tenant_id: str,
    action: str,
    entity_id: str,
    after_data: dict,
    before_data: dict | None = None,
    ip_address: str | None = None,
) -> None:
    supabase.table("audit_logs").insert({
        "tenant_id": tenant_id,
        "actor_type": "kiosk",
        "action": action,
        "entity_type": "attendance_session",
        "entity_id": entity_id,
        "before_data": before_data,
        "after_data": after_data,
        "ip_address": ip_address,
    }).execute()


def _student_summary(student: dict) -> dict:
    return {
        "student_id": student["id"],
        "full_name": student["full_name"],
        "student_code": student["student_code"],
    }


def _client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


def _record_outcome(action: str, outcome: str, **fields) -> None:
    incr_metric(f"kiosk.{action}", outcome=outcome)
    log_event(
        f"kiosk_{action}",
        level=logging.INFO if outcome == "success" else logging.WARNING,
        outcome=outcome,
        **fields,
    )


@router.post("/checkin", response_model=KioskPunchResponse, response_model_exclude_none=True)
async def check_in(
    data: KioskPunchRequest,
    request: Request,
    x_kiosk_secret: str | None = Header(None),
):
    """Self-service check-in from a kiosk terminal."""
    branch_id = str(data.branch_id)
    try:
        branch = _authorize_kiosk(branch_id, x_kiosk_secret)
        tenant_id = branch["tenant_id"]
        student = _authenticate_student(tenant_id, data)

        if student.get("status") != "active":
            raise KioskError(
                "STUDENT_INACTIVE",
                "Your account is inactive. Please contact administration.",
                http_status=status.HTTP_403_FORBIDDEN,
            )

        open_session = _open_session(student["id"])
        if open_session:
            raise KioskError(
                "ALREADY_CHECKED_IN",
                "You are already checked in. Please check out first.",
                http_status=status.HTTP_409_CONFLICT,
                data={"checkin_time": open_session["checkin_time"]},
            )
    except KioskError as exc:
        _record_outcome("checkin", exc.code, branch_id=branch_id, student_code=data.student_code)
        raise

    checkin_time = _utcnow()
    result = supabase.table("attendance_sessions").insert({
        "tenant_id": tenant_id,
        "branch_id": branch_id,
        "student_id": student["id"],
        "checkin_time": checkin_time.isoformat(),
        "status": "checked_in",
    }).execute()
    attendance = result.data[0]

    _audit(
        tenant_id=tenant_id,
        action="student.checkin",
        entity_id=attendance["id"],
        after_data={"attendance_id": attendance["id"], "student_id": student["id"]},
        ip_address=_client_ip(request),
    )
    _record_outcome("checkin", "success", branch_id=branch_id, attendance_id=attendance["id"])

    return {
        "success": True,
        "message": "Check-in successful",
        "data": {
            "attendance_id": attendance["id"],
            "student": _student_summary(student),
            "checkin_time": checkin_time,
            "branch_name": branch.get("name"),
        },
    }


@router.post("/checkout", response_model=KioskPunchResponse, response_model_exclude_none=True)
async def check_out(
    data: KioskPunchRequest,
    request: Request,
    x_kiosk_secret: str | None = Header(None),
):
    """Self-service check-out closing the student's open session."""
    branch_id = str(data.branch_id)
    checkout_time = _utcnow()
    try:
        branch = _authorize_kiosk(branch_id, x_kiosk_secret)
        tenant_id = branch["tenant_id"]
        student = _authenticate_student(tenant_id, data)

        open_session = _open_session(student["id"])
        if not open_session:
            raise KioskError(
                "NOT_CHECKED_IN",
                "You are not checked in. Please check in first.",
                http_status=status.HTTP_400_BAD_REQUEST,
            )

        min_stay = settings.kiosk_min_stay_minutes
        if checkout_too_soon(open_session["checkin_time"], checkout_time, min_stay):
            raise KioskError(
                "CHECKOUT_TOO_SOON",
                f"You must be checked in for at least {min_stay} minutes before checking out.",
                http_status=status.HTTP_400_BAD_REQUEST,
            )
    except KioskError as exc:
        _record_outcome("checkout", exc.code, branch_id=branch_id, student_code=data.student_code)
        raise

    minutes = duration_minutes(open_session["checkin_time"], checkout_time)
    result = supabase.table("attendance_sessions").update({
        "checkout_time": checkout_time.isoformat(),
        "checkout_method": "self_service",
        "duration_minutes": minutes,
        "status": "checked_out",
    }).eq("id", open_session["id"]).is_("checkout_time", "null").execute()
    if not result.data:
        # Closed concurrently by another terminal.
        _record_outcome("checkout", "NOT_CHECKED_IN", branch_id=branch_id, student_code=data.student_code)
        raise KioskError(
            "NOT_CHECKED_IN",
            "You are not checked in. Please check in first.",
            http_status=status.HTTP_400_BAD_REQUEST,
        )

    _audit(
        tenant_id=tenant_id,
        action="student.checkout",
        entity_id=open_session["id"],
        before_data={"checkout_time": None},
        after_data={"checkout_time": checkout_time.isoformat(), "checkout_method": "self_service"},
        ip_address=_client_ip(request),
    )
    _record_outcome(
        "checkout",
        "success",
        branch_id=branch_id,
        attendance_id=open_session["id"],
        duration_minutes=minutes,
    )

    return {
        "success": True,
        "message": "Check-out successful",
        "data": {
            "attendance_id": open_session["id"],
            "student": _student_summary(student),
            "checkin_time": open_session["checkin_time"],
            "checkout_time": checkout_time,
            "duration_minutes": minutes,
            "branch_name": branch.get("name"),
        },
    }


@router.post("/verify", response_model=KioskVerifyResponse, response_model_exclude_none=True)
async def verify(
    data: KioskPunchRequest,
    x_kiosk_secret: str | None = Header(None),
):
    """Check credentials without recording attendance."""
    branch = _authorize_kiosk(str(data.branch_id), x_kiosk_secret)
    student = _find_student(branch["tenant_id"], data.student_code)
    if not student or not verify_password(data.pin, student.get("pin_hash")):
        return {"success": True, "valid": False}

    return {
        "success": True,
        "valid": True,
        "student": {
            "student_id": student["id"],
            "full_name": student["full_name"],
            "status": student["status"],
            "currently_checked_in": _open_session(student["id"]) is not None,
        },
    }
