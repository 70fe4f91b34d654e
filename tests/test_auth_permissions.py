import pytest
from fastapi.testclient import TestClient

from src.auth.context import Principal
from src.auth.dependencies import get_current_principal, require_permissions, required_permissions_of
from src.auth.permissions import (
    CANONICAL_ROLES,
    ROLE_PERMISSIONS,
    Permission,
    has_permission,
    missing_permissions,
    normalize_role,
    permissions_for_role,
    role_at_least,
)
from src.main import app
from src.observability import metrics_snapshot


def _set_principal(principal: Principal) -> None:
    async def _override():
        return principal
    app.dependency_overrides[get_current_principal] = _override


def test_super_admin_holds_every_permission() -> None:
    assert permissions_for_role("super_admin") == frozenset(Permission)
    for permission in Permission:
        assert has_permission("super_admin", permission)


def test_unknown_role_or_permission_is_denied() -> None:
    assert permissions_for_role("janitor") == frozenset()
    assert not has_permission("janitor", Permission.STUDENTS_READ)
    assert not has_permission("admin", "students:teleport")


def test_viewer_reads_but_cannot_record_attendance() -> None:
    assert has_permission("viewer", "attendance:read")
    assert not has_permission("viewer", "attendance:create")
    assert not has_permission("viewer", Permission.STUDENTS_CREATE)


def test_role_bundles_are_nested() -> None:
    assert ROLE_PERMISSIONS["viewer"] - {Permission.ACCOUNTS_READ} <= ROLE_PERMISSIONS["staff"]
    assert ROLE_PERMISSIONS["staff"] <= ROLE_PERMISSIONS["manager"]
    assert ROLE_PERMISSIONS["manager"] < ROLE_PERMISSIONS["admin"]
    assert Permission.USERS_MANAGE in ROLE_PERMISSIONS["admin"]
    assert Permission.USERS_MANAGE not in ROLE_PERMISSIONS["manager"]
    assert Permission.TENANTS_MANAGE not in ROLE_PERMISSIONS["admin"]


def test_role_table_is_read_only() -> None:
    with pytest.raises(TypeError):
        ROLE_PERMISSIONS["viewer"] = frozenset(Permission)  # type: ignore[index]


def test_missing_permissions_lists_only_what_is_absent() -> None:
    assert missing_permissions("staff", ["students:read", "students:delete"]) == {Permission.STUDENTS_DELETE}
    assert missing_permissions("admin", [Permission.USERS_MANAGE]) == set()


def test_normalize_role_accepts_canonical_roles_only() -> None:
    for role in CANONICAL_ROLES:
        assert normalize_role(role.upper()) == role
    with pytest.raises(ValueError):
        normalize_role("owner")


def test_role_hierarchy() -> None:
    assert role_at_least("admin", "manager")
    assert role_at_least("manager", "manager")
    assert not role_at_least("staff", "manager")
    assert role_at_least("super_admin", "admin")
    assert not role_at_least("unknown", "viewer")


def test_principal_derives_permissions_from_role() -> None:
    principal = Principal(user_id="u-1", email="v@school.test", role="viewer", tenant_id="t-1")
    assert principal.permissions == ROLE_PERMISSIONS["viewer"]
    assert "attendance:read" in principal.permission_list()
    assert not principal.is_super_admin


def test_require_permissions_exposes_its_requirement() -> None:
    dependency = require_permissions(Permission.ATTENDANCE_CREATE, "attendance:read")
    assert required_permissions_of(dependency) == {Permission.ATTENDANCE_CREATE, Permission.ATTENDANCE_READ}


def test_viewer_is_forbidden_from_manual_checkout(fake_db) -> None:
    fake_db({"attendance_sessions": []})
    _set_principal(Principal(user_id="u-view", email="v@school.test", role="viewer", tenant_id="t-1"))

    client = TestClient(app)
    response = client.post("/api/admin/attendance/att-1/checkout")

    assert response.status_code == 403
    assert response.json()["detail"] == "Permission required: attendance:create"
    assert metrics_snapshot().get("auth.permission_denied|role=viewer") == 1


def test_viewer_can_read_current_attendance(fake_db) -> None:
    fake_db({"attendance_sessions": [], "students": []})
    _set_principal(Principal(user_id="u-view", email="v@school.test", role="viewer", tenant_id="t-1"))

    client = TestClient(app)
    response = client.get("/api/admin/attendance/current")

    assert response.status_code == 200


def test_tenant_routes_require_tenant_context(fake_db) -> None:
    fake_db({"students": []})
    _set_principal(Principal(user_id="u-root", email="root@school.test", role="super_admin", tenant_id=None))

    client = TestClient(app)
    response = client.get("/api/admin/students/")

    assert response.status_code == 403
    assert response.json()["detail"] == "Tenant context required"


def test_super_admin_routes_reject_tenant_admin(fake_db) -> None:
    fake_db({"tenants": []})
    _set_principal(Principal(user_id="u-admin", email="a@school.test", role="admin", tenant_id="t-1"))

    client = TestClient(app)
    assert client.get("/api/super-admin/companies").status_code == 403
    assert client.get("/api/super-admin/metrics").status_code == 403
