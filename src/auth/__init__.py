from src.auth.context import Principal, TokenClaims, merge_principal
from src.auth.dependencies import (
    get_current_principal,
    get_current_super_admin,
    require_permissions,
    require_tenant,
    resolve_principal,
)
from src.auth.jwt import create_access_token
from src.auth.permissions import Permission, has_permission

__all__ = [
    "Principal",
    "TokenClaims",
    "merge_principal",
    "get_current_principal",
    "get_current_super_admin",
    "require_permissions",
    "require_tenant",
    "resolve_principal",
    "create_access_token",
    "Permission",
    "has_permission",
]
