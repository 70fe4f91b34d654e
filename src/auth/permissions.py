from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import Enum
from types import MappingProxyType
from typing import Final


class Permission(str, Enum):
    STUDENTS_READ = "students:read"
    STUDENTS_CREATE = "students:create"
    STUDENTS_UPDATE = "students:update"
    STUDENTS_DELETE = "students:delete"

    TEACHERS_READ = "teachers:read"
    TEACHERS_CREATE = "teachers:create"
    TEACHERS_UPDATE = "teachers:update"
    TEACHERS_DELETE = "teachers:delete"

    ATTENDANCE_READ = "attendance:read"
    ATTENDANCE_CREATE = "attendance:create"

    ACCOUNTS_READ = "accounts:read"
    ACCOUNTS_MANAGE = "accounts:manage"

    USERS_READ = "users:read"
    USERS_MANAGE = "users:manage"

    # Cross-tenant administration, super admin only
    TENANTS_READ = "tenants:read"
    TENANTS_MANAGE = "tenants:manage"


SUPER_ADMIN: Final[str] = "super_admin"

CANONICAL_ROLES: Final[tuple[str, ...]] = ("super_admin", "admin", "manager", "staff", "viewer")

ROLE_LEVELS: Final[Mapping[str, int]] = MappingProxyType({
    "super_admin": 100,
    "admin": 80,
    "manager": 60,
    "staff": 40,
    "viewer": 20,
})

_MANAGER_PERMISSIONS: Final[frozenset[Permission]] = frozenset({
    Permission.STUDENTS_READ,
    Permission.STUDENTS_CREATE,
    Permission.STUDENTS_UPDATE,
    Permission.STUDENTS_DELETE,
    Permission.TEACHERS_READ,
    Permission.TEACHERS_CREATE,
    Permission.TEACHERS_UPDATE,
    Permission.TEACHERS_DELETE,
    Permission.ATTENDANCE_READ,
    Permission.ATTENDANCE_CREATE,
    Permission.ACCOUNTS_READ,
    Permission.ACCOUNTS_MANAGE,
})

ROLE_PERMISSIONS: Final[Mapping[str, frozenset[Permission]]] = MappingProxyType({
    "super_admin": frozenset(Permission),
    "admin": _MANAGER_PERMISSIONS | {Permission.USERS_READ, Permission.USERS_MANAGE},
    "manager": _MANAGER_PERMISSIONS,
    "staff": frozenset({
        Permission.STUDENTS_READ,
        Permission.STUDENTS_CREATE,
        Permission.STUDENTS_UPDATE,
        Permission.TEACHERS_READ,
        Permission.ATTENDANCE_READ,
        Permission.ATTENDANCE_CREATE,
    }),
    "viewer": frozenset({
        Permission.STUDENTS_READ,
        Permission.TEACHERS_READ,
        Permission.ATTENDANCE_READ,
        Permission.ACCOUNTS_READ,
    }),
})


def normalize_role(role: str) -> str:
    """Validate a role supplied as input. Unknown roles are rejected."""
    normalized = (role or "").strip().lower()
    if normalized not in CANONICAL_ROLES:
        raise ValueError(f"Unsupported role: {role}")
    return normalized


def permissions_for_role(role: str) -> frozenset[Permission]:
    """Unknown roles get the empty set."""
    return ROLE_PERMISSIONS.get(role, frozenset())


def has_permission(role: str, permission: Permission | str) -> bool:
    try:
        permission = Permission(permission)
    except ValueError:
        return False
    return permission in permissions_for_role(role)


def missing_permissions(role: str, required: Iterable[Permission | str]) -> set[Permission]:
    granted = permissions_for_role(role)
    return {Permission(p) for p in required} - granted


def role_at_least(role: str, minimum: str) -> bool:
    if role == SUPER_ADMIN:
        return True
    return ROLE_LEVELS.get(role, 0) >= ROLE_LEVELS[minimum]
