import logging
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, Query, status
from src.auth import Permission, Principal, get_current_super_admin, require_permissions
from src.auth.passwords import hash_password
from src.auth.permissions import SUPER_ADMIN
from src.db import supabase
from src.models.tenants import (
    GlobalStats,
    TenantCreate,
    TenantCreateResponse,
    TenantPage,
    TenantResponse,
    TenantStatusUpdate,
    TenantUpdate,
)
from src.models.users import UserCreate, UserResponse
from src.observability import log_event, metrics_snapshot

router = APIRouter(prefix="/api/super-admin", tags=["super-admin"])

DEFAULT_BRANCH_NAME = "Main Branch"


def _get_tenant(tenant_id: str) -> dict:
    result = supabase.table("tenants").select("*").eq("id", tenant_id).execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")
    return result.data[0]


# --- Companies (tenants) ---

@router.post("/companies", response_model=TenantCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_company(
    data: TenantCreate,
    auth: Principal = Depends(require_permissions(Permission.TENANTS_MANAGE)),
):
    """Create a tenant with its default branch and first admin user."""
    existing = supabase.table("tenants").select("id").eq("code", data.code).execute()
    if existing.data:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Company code already exists")

    email_check = supabase.table("users").select("id").eq("email", data.admin_email).execute()
    if email_check.data:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email is already registered")

    tenant = supabase.table("tenants").insert({
        "name": data.name,
        "code": data.code,
        "status": "active",
        "settings": {},
    }).execute().data[0]

    branch = supabase.table("branches").insert({
        "tenant_id": tenant["id"],
        "name": DEFAULT_BRANCH_NAME,
        "status": "active",
    }).execute().data[0]

    admin_user = supabase.table("users").insert({
        "tenant_id": tenant["id"],
        "email": data.admin_email,
        "password_hash": hash_password(data.admin_password),
        "full_name": data.admin_full_name,
        "role": "admin",
        "status": "active",
    }).execute().data[0]

    log_event("tenant_created", tenant_id=tenant["id"], code=data.code, created_by=auth.user_id)
    return TenantCreateResponse(
        company=tenant,
        branch_id=branch["id"],
        admin_user_id=admin_user["id"],
        admin_email=admin_user["email"],
    )


@router.get("/companies", response_model=TenantPage)
async def list_companies(
    search: str | None = Query(None),
    status_filter: str | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    auth: Principal = Depends(require_permissions(Permission.TENANTS_READ)),
):
    """List ALL tenants."""
    query = supabase.table("tenants").select("*")
    if status_filter:
        query = query.eq("status", status_filter)
    if search:
        query = query.ilike("name", f"%{search}%")
    rows = query.order("created_at", desc=True).execute().data or []
    start = (page - 1) * limit
    return TenantPage(data=rows[start:start + limit], total=len(rows), page=page, limit=limit)


@router.get("/companies/{tenant_id}", response_model=TenantResponse)
async def get_company(
    tenant_id: str,
    auth: Principal = Depends(require_permissions(Permission.TENANTS_READ)),
):
    return _get_tenant(tenant_id)


@router.put("/companies/{tenant_id}", response_model=TenantResponse)
async def update_company(
    tenant_id: str,
    data: TenantUpdate,
    auth: Principal = Depends(require_permissions(Permission.TENANTS_MANAGE)),
):
    """Update any tenant."""
    update_data = data.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    update_data["updated_at"] = datetime.now(timezone.utc).isoformat()
    result = supabase.table("tenants").update(update_data).eq("id", tenant_id).execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")
    return result.data[0]


@router.patch("/companies/{tenant_id}/status", response_model=TenantResponse)
async def update_company_status(
    tenant_id: str,
    data: TenantStatusUpdate,
    auth: Principal = Depends(require_permissions(Permission.TENANTS_MANAGE)),
):
    """Suspend or reactivate a tenant. Suspension revokes every session under it."""
    result = supabase.table("tenants").update({
        "status": data.status,
        "updated_at": datetime.now(timezone.utc).isoformat(),
    }).eq("id", tenant_id).execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")

    log_event(
        "tenant_status_changed",
        level=logging.WARNING if data.status != "active" else logging.INFO,
        tenant_id=tenant_id,
        status=data.status,
        changed_by=auth.user_id,
    )
    return result.data[0]


@router.post(
    "/companies/{tenant_id}/users",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_company_user(
    tenant_id: str,
    data: UserCreate,
    auth: Principal = Depends(require_permissions(Permission.TENANTS_MANAGE, Permission.USERS_MANAGE)),
):
    """Create a user inside a tenant."""
    _get_tenant(tenant_id)
    if data.role == SUPER_ADMIN:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Super admins cannot belong to a company",
        )

    existing = supabase.table("users").select("id").eq(
        "tenant_id", tenant_id
    ).eq("email", data.email).execute()
    if existing.data:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email is already registered")

    user = supabase.table("users").insert({
        "tenant_id": tenant_id,
        "email": data.email,
        "password_hash": hash_password(data.password),
        "full_name": data.full_name,
        "role": data.role,
        "status": "active",
    }).execute().data[0]
    return UserResponse(
        id=user["id"],
        email=user["email"],
        full_name=user["full_name"],
        role=user["role"],
        status=user["status"],
        created_at=user.get("created_at"),
        updated_at=user.get("updated_at"),
    )


# --- Stats & metrics ---

@router.get("/stats", response_model=GlobalStats)
async def global_stats(auth: Principal = Depends(require_permissions(Permission.TENANTS_READ))):
    tenants = supabase.table("tenants").select("id, status").execute().data or []
    students = supabase.table("students").select("id").execute().data or []
    users = supabase.table("users").select("id").execute().data or []
    return GlobalStats(
        total_companies=len(tenants),
        active_companies=sum(1 for t in tenants if t.get("status") == "active"),
        total_students=len(students),
        total_users=len(users),
    )


@router.get("/metrics")
async def get_metrics(auth: Principal = Depends(get_current_super_admin)):
    """In-process counters since startup."""
    return {"counters": metrics_snapshot()}
