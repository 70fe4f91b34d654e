import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError

from src.auth.context import Principal
from src.auth.dependencies import get_current_principal
from src.main import app
from src.models.biometric import BulkEnroll, DeviceRegister, EnrollStudent

DEVICE_ID = "7d3c8f1e-2a4b-4c5d-9e6f-0a1b2c3d4e5f"
STUDENT_A = "11111111-1111-4111-8111-111111111111"
STUDENT_B = "22222222-2222-4222-8222-222222222222"
STUDENT_OTHER = "33333333-3333-4333-8333-333333333333"


def _set_principal(role: str) -> None:
    principal = Principal(user_id="u-1", email="m@greenfield.edu", role=role, tenant_id="t-1")

    async def _override():
        return principal
    app.dependency_overrides[get_current_principal] = _override


def _tables() -> dict:
    return {
        "biometric_devices": [{
            "id": DEVICE_ID,
            "tenant_id": "t-1",
            "serial_number": "ZK-0001",
            "name": "Front Gate",
            "status": "active",
            "timezone_offset": 0,
        }],
        "biometric_enrollments": [],
        "students": [
            {"id": STUDENT_A, "tenant_id": "t-1"},
            {"id": STUDENT_B, "tenant_id": "t-1"},
            {"id": STUDENT_OTHER, "tenant_id": "t-2"},
        ],
    }


def test_device_register_accepts_camel_and_snake_case() -> None:
    camel = DeviceRegister.model_validate({"serialNumber": "ZK-1", "name": "Gate", "ipAddress": "10.0.0.5"})
    snake = DeviceRegister.model_validate({"serial_number": "ZK-1", "name": "Gate", "timezone_offset": 5.5})

    assert camel.serial_number == "ZK-1"
    assert camel.ip_address == "10.0.0.5"
    assert snake.timezone_offset == 5.5


def test_device_register_enforces_field_lengths() -> None:
    with pytest.raises(ValidationError):
        DeviceRegister(serial_number="x" * 101, name="Gate")
    with pytest.raises(ValidationError):
        DeviceRegister(serial_number="ZK-1", name="Gate", ip_address="1" * 46)
    with pytest.raises(ValidationError):
        DeviceRegister.model_validate({"name": "Gate"})


def test_enroll_requires_uuids_and_device_user_id() -> None:
    with pytest.raises(ValidationError):
        EnrollStudent(device_id="not-a-uuid", student_id=STUDENT_A, device_user_id="42")
    with pytest.raises(ValidationError):
        EnrollStudent(device_id=DEVICE_ID, student_id=STUDENT_A, device_user_id="")
    with pytest.raises(ValidationError):
        EnrollStudent(device_id=DEVICE_ID, student_id=STUDENT_A, device_user_id="9" * 51)

    bulk = BulkEnroll.model_validate({
        "deviceId": DEVICE_ID,
        "enrollments": [{"studentId": STUDENT_A, "deviceUserId": "1"}],
    })
    assert str(bulk.enrollments[0].student_id) == STUDENT_A


def test_register_device_defaults_and_duplicate_serial(fake_db) -> None:
    db = fake_db(_tables())
    _set_principal("staff")
    client = TestClient(app)

    created = client.post("/api/admin/biometric/devices", json={"serialNumber": "ZK-0002", "name": "Library"})
    duplicate = client.post("/api/admin/biometric/devices", json={"serialNumber": "ZK-0001", "name": "Again"})

    assert created.status_code == 201
    assert created.json()["timezone_offset"] == 0
    assert db.tables["biometric_devices"][1]["tenant_id"] == "t-1"
    assert duplicate.status_code == 409


def test_viewer_cannot_register_devices(fake_db) -> None:
    fake_db(_tables())
    _set_principal("viewer")
    client = TestClient(app)

    assert client.get("/api/admin/biometric/devices").status_code == 200
    response = client.post("/api/admin/biometric/devices", json={"serialNumber": "ZK-9", "name": "Gate"})
    assert response.status_code == 403


def test_enroll_student_and_conflicts(fake_db) -> None:
    fake_db(_tables())
    _set_principal("staff")
    client = TestClient(app)
    payload = {"deviceId": DEVICE_ID, "studentId": STUDENT_A, "deviceUserId": "101"}

    created = client.post("/api/admin/biometric/enroll", json=payload)
    again = client.post("/api/admin/biometric/enroll", json=payload)
    same_user_id = client.post(
        "/api/admin/biometric/enroll",
        json={"deviceId": DEVICE_ID, "studentId": STUDENT_B, "deviceUserId": "101"},
    )
    other_tenant = client.post(
        "/api/admin/biometric/enroll",
        json={"deviceId": DEVICE_ID, "studentId": STUDENT_OTHER, "deviceUserId": "102"},
    )

    assert created.status_code == 201
    assert created.json()["status"] == "active"
    assert again.status_code == 409
    assert same_user_id.status_code == 409
    assert other_tenant.status_code == 404


def test_bulk_enroll_reports_each_item(fake_db) -> None:
    fake_db(_tables())
    _set_principal("manager")
    client = TestClient(app)
    client.post(
        "/api/admin/biometric/enroll",
        json={"deviceId": DEVICE_ID, "studentId": STUDENT_A, "deviceUserId": "101"},
    )

    response = client.post("/api/admin/biometric/enroll/bulk", json={
        "deviceId": DEVICE_ID,
        "enrollments": [
            {"studentId": STUDENT_A, "deviceUserId": "201"},
            {"studentId": STUDENT_B, "deviceUserId": "202"},
            {"studentId": STUDENT_OTHER, "deviceUserId": "203"},
        ],
    })

    assert response.status_code == 200
    body = response.json()
    assert body["enrolled"] == 1
    assert body["skipped"] == 1
    assert [r["status"] for r in body["results"]] == ["skipped", "enrolled", "failed"]


def test_list_and_remove_enrollments(fake_db) -> None:
    db = fake_db(_tables())
    _set_principal("staff")
    client = TestClient(app)
    created = client.post(
        "/api/admin/biometric/enroll",
        json={"deviceId": DEVICE_ID, "studentId": STUDENT_A, "deviceUserId": "101"},
    ).json()

    listed = client.get("/api/admin/biometric/enrollments", params={"deviceId": DEVICE_ID})
    removed = client.delete(f"/api/admin/biometric/enroll/{created['id']}")

    assert [e["id"] for e in listed.json()] == [created["id"]]
    assert removed.status_code == 204
    assert db.tables["biometric_enrollments"] == []
