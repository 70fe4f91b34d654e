from fastapi.testclient import TestClient

from src.auth.context import Principal
from src.auth.dependencies import get_current_principal
from src.main import app
from src.observability import incr_metric


def _set_super_admin() -> None:
    principal = Principal(user_id="u-root", email="root@platform.io", role="super_admin", tenant_id=None)

    async def _override():
        return principal
    app.dependency_overrides[get_current_principal] = _override


def _tables() -> dict:
    return {
        "tenants": [{"id": "t-1", "code": "GREEN", "name": "Greenfield School", "status": "active"}],
        "branches": [],
        "users": [{"id": "u-1", "tenant_id": "t-1", "email": "admin@greenfield.edu", "role": "admin"}],
        "students": [{"id": "s-1", "tenant_id": "t-1"}],
    }


def test_create_company_provisions_branch_and_admin(fake_db) -> None:
    db = fake_db(_tables())
    _set_super_admin()
    client = TestClient(app)

    response = client.post("/api/super-admin/companies", json={
        "name": "Riverside High",
        "code": " river ",
        "admin_email": "head@riverside.edu",
        "admin_password": "long-enough-pw",
        "admin_full_name": "Head Teacher",
    })

    assert response.status_code == 201
    body = response.json()
    assert body["company"]["code"] == "RIVER"
    assert body["admin_email"] == "head@riverside.edu"
    assert db.tables["branches"][0]["name"] == "Main Branch"
    assert db.tables["users"][-1]["role"] == "admin"
    assert db.tables["users"][-1]["tenant_id"] == body["company"]["id"]


def test_create_company_duplicate_code(fake_db) -> None:
    fake_db(_tables())
    _set_super_admin()
    client = TestClient(app)

    response = client.post("/api/super-admin/companies", json={
        "name": "Greenfield Again",
        "code": "green",
        "admin_email": "other@greenfield.edu",
        "admin_password": "long-enough-pw",
        "admin_full_name": "Other",
    })

    assert response.status_code == 409


def test_suspend_company(fake_db) -> None:
    db = fake_db(_tables())
    _set_super_admin()
    client = TestClient(app)

    response = client.patch("/api/super-admin/companies/t-1/status", json={"status": "suspended"})
    missing = client.patch("/api/super-admin/companies/t-404/status", json={"status": "suspended"})
    invalid = client.patch("/api/super-admin/companies/t-1/status", json={"status": "deleted"})

    assert response.status_code == 200
    assert db.tables["tenants"][0]["status"] == "suspended"
    assert missing.status_code == 404
    assert invalid.status_code == 422


def test_company_users_cannot_be_super_admins(fake_db) -> None:
    fake_db(_tables())
    _set_super_admin()
    client = TestClient(app)

    response = client.post("/api/super-admin/companies/t-1/users", json={
        "email": "root2@greenfield.edu",
        "password": "long-enough-pw",
        "full_name": "Second Root",
        "role": "super_admin",
    })
    created = client.post("/api/super-admin/companies/t-1/users", json={
        "email": "viewer@greenfield.edu",
        "password": "long-enough-pw",
        "full_name": "Viewer",
    })

    assert response.status_code == 400
    assert created.status_code == 201
    assert created.json()["role"] == "viewer"


def test_stats_and_metrics(fake_db) -> None:
    fake_db(_tables())
    _set_super_admin()
    incr_metric("kiosk.checkin", outcome="success")
    client = TestClient(app)

    stats = client.get("/api/super-admin/stats").json()
    metrics = client.get("/api/super-admin/metrics").json()

    assert stats == {"total_companies": 1, "active_companies": 1, "total_students": 1, "total_users": 1}
    assert metrics["counters"]["kiosk.checkin|outcome=success"] == 1
