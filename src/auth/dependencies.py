import logging
from fastapi import Depends, Header, HTTPException, Request, status
from src.auth.context import Principal, merge_principal
from src.auth.jwt import decode_access_token
from src.auth.permissions import Permission
from src.db import supabase
from src.domain.errors import Unauthorized
from src.observability import incr_metric, log_event


def _extract_bearer_token(authorization: str | None) -> str | None:
    """Extract token from 'Bearer <token>' header."""
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def _load_account(user_id: str) -> dict | None:
    result = supabase.table("users").select(
        "id, tenant_id, status"
    ).eq("id", user_id).execute()
    if not result.data:
        return None
    return result.data[0]


def _load_tenant(tenant_id: str) -> dict | None:
    result = supabase.table("tenants").select(
        "id, code, name, status"
    ).eq("id", tenant_id).execute()
    if not result.data:
        return None
    return result.data[0]


def resolve_principal(token: str) -> Principal:
    """
    Resolve a bearer token to a principal.

    Every call re-reads the account and its tenant, so a deactivated user or a
    suspended tenant loses access on the next request.
    """
    claims = decode_access_token(token)
    if claims is None:
        raise Unauthorized("Invalid or expired token")

    account = _load_account(claims.sub)
    if not account or account.get("status") != "active":
        raise Unauthorized("User not found or inactive")

    tenant = None
    if account.get("tenant_id"):
        tenant = _load_tenant(account["tenant_id"])
        # A missing tenant row degrades display fields only.
        if tenant and tenant.get("status") != "active":
            raise Unauthorized("Company account is inactive")

    return merge_principal(claims, tenant)


async def get_current_principal(
    request: Request,
    authorization: str | None = Header(None),
) -> Principal:
    """JWT session auth for user-facing endpoints."""
    token = _extract_bearer_token(authorization)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authorization header",
        )

    try:
        return resolve_principal(token)
    except Unauthorized as exc:
        incr_metric("auth.rejected", reason=exc.message)
        log_event(
            "auth_rejected",
            level=logging.WARNING,
            request_id=_request_id(request),
            reason=exc.message,
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=exc.message,
        ) from exc


def require_permissions(*permissions: Permission | str):
    """Dependency factory denying the request unless every listed permission is granted."""
    required = frozenset(Permission(p) for p in permissions)

    async def _require(
        request: Request,
        principal: Principal = Depends(get_current_principal),
    ) -> Principal:
        missing = required - principal.permissions
        if missing:
            missing_keys = sorted(p.value for p in missing)
            incr_metric("auth.permission_denied", role=principal.role)
            log_event(
                "permission_denied",
                level=logging.WARNING,
                request_id=_request_id(request),
                user_id=principal.user_id,
                role=principal.role,
                missing=missing_keys,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission required: {', '.join(missing_keys)}",
            )
        return principal

    _require.required_permissions = required
    return _require


def required_permissions_of(dependency) -> frozenset[Permission]:
    return getattr(dependency, "required_permissions", frozenset())


async def get_current_super_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_super_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Super admin role required",
        )
    return principal


def require_tenant(principal: Principal) -> str:
    """Tenant id of a tenant-scoped principal."""
    if not principal.tenant_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Tenant context required",
        )
    return principal.tenant_id
