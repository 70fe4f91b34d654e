from fastapi import APIRouter, Depends, HTTPException, status
from src.auth import Principal, TokenClaims, create_access_token, get_current_principal
from src.auth.passwords import verify_password
from src.auth.permissions import SUPER_ADMIN, permissions_for_role
from src.db import supabase
from src.models.auth import LoginRequest, LoginResponse, MeResponse
from src.observability import incr_metric, log_event

router = APIRouter(prefix="/api/auth", tags=["auth"])

SUPER_ADMIN_CODE = "SUPERADMIN"

_USER_FIELDS = "id, tenant_id, email, full_name, password_hash, role, status"


def _invalid_credentials() -> HTTPException:
    incr_metric("auth.login_failed")
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid credentials",
    )


@router.post("/login", response_model=LoginResponse)
async def login(data: LoginRequest):
    """Login with company code, email and password, returns JWT."""
    tenant = None
    company_code = (data.company_code or "").strip().upper()

    if not company_code or company_code == SUPER_ADMIN_CODE:
        result = supabase.table("users").select(_USER_FIELDS).eq(
            "email", data.email
        ).eq("role", SUPER_ADMIN).is_("tenant_id", "null").execute()
    else:
        tenant_result = supabase.table("tenants").select(
            "id, code, name, status"
        ).eq("code", company_code).execute()
        if not tenant_result.data:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Company not found. Please check your company code.",
            )
        tenant = tenant_result.data[0]
        if tenant["status"] != "active":
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Company account is inactive. Please contact support.",
            )
        result = supabase.table("users").select(_USER_FIELDS).eq(
            "email", data.email
        ).eq("tenant_id", tenant["id"]).execute()

    if not result.data:
        raise _invalid_credentials()
    user = result.data[0]

    if not verify_password(data.password, user["password_hash"]):
        raise _invalid_credentials()

    if user["status"] != "active":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account is inactive. Please contact your administrator.",
        )

    claims = TokenClaims(
        sub=user["id"],
        email=user["email"],
        role=user["role"],
        tenant_id=user.get("tenant_id"),
        company_code=tenant["code"] if tenant else None,
        company_name=tenant["name"] if tenant else None,
    )
    log_event("login_succeeded", user_id=user["id"], tenant_id=user.get("tenant_id"))
    incr_metric("auth.login_succeeded")

    return LoginResponse(
        access_token=create_access_token(claims),
        user={
            "id": user["id"],
            "email": user["email"],
            "full_name": user.get("full_name"),
            "role": user["role"],
            "permissions": sorted(p.value for p in permissions_for_role(user["role"])),
            "is_super_admin": user["role"] == SUPER_ADMIN,
        },
        company={"id": tenant["id"], "code": tenant["code"], "name": tenant["name"]} if tenant else None,
    )


@router.get("/me", response_model=MeResponse)
async def get_me(auth: Principal = Depends(get_current_principal)):
    """Get current user info from the resolved principal."""
    return MeResponse(
        user_id=auth.user_id,
        email=auth.email,
        role=auth.role,
        tenant_id=auth.tenant_id,
        is_super_admin=auth.is_super_admin,
        company_code=auth.company_code,
        company_name=auth.company_name,
        permissions=auth.permission_list(),
    )
