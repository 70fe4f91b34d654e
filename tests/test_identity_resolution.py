import pytest
from fastapi.testclient import TestClient

from src.auth.context import TokenClaims, merge_principal
from src.auth.dependencies import resolve_principal
from src.auth.jwt import create_access_token, decode_access_token
from src.domain.errors import Unauthorized
from src.main import app
from src.observability import metrics_snapshot


def _claims(**overrides) -> TokenClaims:
    values = {
        "sub": "u-1",
        "email": "admin@greenfield.test",
        "role": "admin",
        "tenant_id": "t-1",
        "company_code": "GREEN",
        "company_name": "Greenfield Academy",
    }
    values.update(overrides)
    return TokenClaims(**values)


def _tables(user_status: str = "active", tenant_status: str = "active", with_tenant: bool = True) -> dict:
    tenants = []
    if with_tenant:
        tenants.append({"id": "t-1", "code": "GREENFIELD", "name": "Greenfield School", "status": tenant_status})
    return {
        "users": [{"id": "u-1", "tenant_id": "t-1", "status": user_status}],
        "tenants": tenants,
    }


def test_token_payload_uses_camel_case_claims() -> None:
    token = create_access_token(_claims())
    decoded = decode_access_token(token)

    assert decoded == _claims()
    assert _claims(company_name=None).to_payload() == {
        "sub": "u-1",
        "email": "admin@greenfield.test",
        "role": "admin",
        "tenantId": "t-1",
        "companyCode": "GREEN",
    }


def test_token_missing_tenant_claim_is_rejected() -> None:
    with pytest.raises(ValueError):
        TokenClaims.from_payload({"sub": "u-1", "email": "a@b.test", "role": "admin"})


def test_expired_or_tampered_token_decodes_to_none() -> None:
    expired = create_access_token(_claims(), expires_minutes=-1)
    assert decode_access_token(expired) is None
    assert decode_access_token(create_access_token(_claims()) + "x") is None
    assert decode_access_token("not-a-jwt") is None


def test_resolve_principal_uses_live_tenant_fields(fake_db) -> None:
    fake_db(_tables())

    principal = resolve_principal(create_access_token(_claims()))

    assert principal.user_id == "u-1"
    assert principal.tenant_id == "t-1"
    assert principal.company_code == "GREENFIELD"
    assert principal.company_name == "Greenfield School"
    assert "users:manage" in principal.permission_list()


def test_resolve_principal_falls_back_to_token_when_tenant_row_missing(fake_db) -> None:
    fake_db(_tables(with_tenant=False))

    principal = resolve_principal(create_access_token(_claims()))

    assert principal.company_code == "GREEN"
    assert principal.company_name == "Greenfield Academy"


def test_resolve_principal_rejects_inactive_user(fake_db) -> None:
    fake_db(_tables(user_status="inactive"))

    with pytest.raises(Unauthorized) as exc_info:
        resolve_principal(create_access_token(_claims()))
    assert exc_info.value.message == "User not found or inactive"


def test_resolve_principal_rejects_unknown_user(fake_db) -> None:
    fake_db({"users": [], "tenants": []})

    with pytest.raises(Unauthorized) as exc_info:
        resolve_principal(create_access_token(_claims()))
    assert exc_info.value.message == "User not found or inactive"


def test_resolve_principal_rejects_suspended_tenant(fake_db) -> None:
    fake_db(_tables(tenant_status="suspended"))

    with pytest.raises(Unauthorized) as exc_info:
        resolve_principal(create_access_token(_claims()))
    assert exc_info.value.message == "Company account is inactive"


def test_super_admin_resolves_without_tenant(fake_db) -> None:
    fake_db({"users": [{"id": "u-root", "tenant_id": None, "status": "active"}], "tenants": []})

    principal = resolve_principal(create_access_token(
        _claims(sub="u-root", role="super_admin", tenant_id=None, company_code=None, company_name=None)
    ))

    assert principal.is_super_admin
    assert principal.tenant_id is None
    assert "tenants:manage" in principal.permission_list()


def test_merge_principal_without_tenant_keeps_token_fields() -> None:
    principal = merge_principal(_claims(), None)
    assert principal.company_code == "GREEN"
    assert principal.company_name == "Greenfield Academy"


def test_missing_header_is_unauthorized(fake_db) -> None:
    fake_db(_tables())
    client = TestClient(app)

    response = client.get("/api/auth/me")

    assert response.status_code == 401
    assert response.json()["detail"] == "Missing authorization header"


def test_expired_token_is_unauthorized_over_http(fake_db) -> None:
    fake_db(_tables())
    client = TestClient(app)
    token = create_access_token(_claims(), expires_minutes=-5)

    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid or expired token"
    assert metrics_snapshot().get("auth.rejected|reason=Invalid or expired token") == 1


def test_suspended_tenant_loses_access_on_next_request(fake_db) -> None:
    db = fake_db(_tables())
    client = TestClient(app)
    headers = {"Authorization": f"Bearer {create_access_token(_claims())}"}

    assert client.get("/api/auth/me", headers=headers).status_code == 200

    db.tables["tenants"][0]["status"] = "suspended"
    response = client.get("/api/auth/me", headers=headers)

    assert response.status_code == 401
    assert response.json()["detail"] == "Company account is inactive"
