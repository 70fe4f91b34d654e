from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, status, Query
from src.auth import Permission, Principal, require_permissions, require_tenant
from src.auth.passwords import hash_password
from src.auth.permissions import role_at_least
from src.db import supabase
from src.models.users import PasswordReset, UserCreate, UserResponse, UserUpdate

router = APIRouter(prefix="/api/admin/users", tags=["users"])

_USER_FIELDS = "id, tenant_id, email, full_name, role, status, created_at, updated_at"


def _check_role_assignment(role: str, auth: Principal) -> None:
    """Users cannot grant a role above their own."""
    if not role_at_least(auth.role, role):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Cannot assign role: {role}")


@router.get("/", response_model=list[UserResponse])
async def list_users(
    role: str | None = Query(None),
    status_filter: str | None = Query(None, alias="status"),
    search: str | None = Query(None),
    auth: Principal = Depends(require_permissions(Permission.USERS_READ)),
):
    """List users in the tenant."""
    query = supabase.table("users").select(_USER_FIELDS).eq("tenant_id", require_tenant(auth))
    if role:
        query = query.eq("role", role)
    if status_filter:
        query = query.eq("status", status_filter)
    if search:
        query = query.ilike("email", f"%{search}%")
    result = query.execute()
    return result.data


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    data: UserCreate,
    auth: Principal = Depends(require_permissions(Permission.USERS_MANAGE)),
):
    """Create a new user in the tenant."""
    tenant_id = require_tenant(auth)
    _check_role_assignment(data.role, auth)

    existing = supabase.table("users").select("id").eq(
        "tenant_id", tenant_id
    ).eq("email", data.email).execute()
    if existing.data:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email is already registered")

    insert_data = {
        "tenant_id": tenant_id,
        "email": data.email,
        "password_hash": hash_password(data.password),
        "full_name": data.full_name,
        "role": data.role,
        "status": "active",
    }
    result = supabase.table("users").insert(insert_data).execute()
    user = result.data[0]

    # Remove password_hash from response
    return UserResponse(
        id=user["id"],
        email=user["email"],
        full_name=user["full_name"],
        role=user["role"],
        status=user["status"],
        created_at=user.get("created_at"),
        updated_at=user.get("updated_at"),
    )


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    auth: Principal = Depends(require_permissions(Permission.USERS_READ)),
):
    """Get a user by ID."""
    result = supabase.table("users").select(_USER_FIELDS).eq(
        "id", user_id
    ).eq("tenant_id", require_tenant(auth)).execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return result.data[0]


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    data: UserUpdate,
    auth: Principal = Depends(require_permissions(Permission.USERS_MANAGE)),
):
    """Update a user. Deactivation takes effect on the user's next request."""
    tenant_id = require_tenant(auth)
    update_data = data.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")
    if update_data.get("role"):
        _check_role_assignment(update_data["role"], auth)
    if user_id == auth.user_id and (
        update_data.get("status") == "inactive" or "role" in update_data
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot change your own role or status",
        )

    update_data["updated_at"] = datetime.now(timezone.utc).isoformat()
    result = supabase.table("users").update(update_data).eq(
        "id", user_id
    ).eq("tenant_id", tenant_id).execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return result.data[0]


@router.post("/{user_id}/reset-password", status_code=status.HTTP_204_NO_CONTENT)
async def reset_password(
    user_id: str,
    data: PasswordReset,
    auth: Principal = Depends(require_permissions(Permission.USERS_MANAGE)),
):
    result = supabase.table("users").update({
        "password_hash": hash_password(data.new_password),
        "updated_at": datetime.now(timezone.utc).isoformat(),
    }).eq("id", user_id).eq("tenant_id", require_tenant(auth)).execute()
    if not result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return None
