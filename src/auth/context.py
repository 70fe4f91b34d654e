from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from src.auth.permissions import SUPER_ADMIN, Permission, permissions_for_role


@dataclass(frozen=True)
class TokenClaims:
    """Session token payload. Keys on the wire are camelCase."""
    sub: str
    email: str
    role: str
    tenant_id: str | None
    company_code: str | None = None
    company_name: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "TokenClaims":
        for key in ("sub", "email", "role"):
            if not isinstance(payload.get(key), str) or not payload[key]:
                raise ValueError(f"Missing claim: {key}")
        if "tenantId" not in payload:
            raise ValueError("Missing claim: tenantId")
        return cls(
            sub=payload["sub"],
            email=payload["email"],
            role=payload["role"],
            tenant_id=payload["tenantId"],
            company_code=payload.get("companyCode"),
            company_name=payload.get("companyName"),
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "sub": self.sub,
            "email": self.email,
            "role": self.role,
            "tenantId": self.tenant_id,
        }
        if self.company_code is not None:
            payload["companyCode"] = self.company_code
        if self.company_name is not None:
            payload["companyName"] = self.company_name
        return payload


@dataclass(frozen=True)
class Principal:
    """Identity context for authenticated requests."""
    user_id: str
    email: str
    role: str
    tenant_id: str | None = None
    company_code: str | None = None
    company_name: str | None = None
    permissions: frozenset[Permission] = field(default=frozenset())

    def __post_init__(self) -> None:
        if not self.permissions:
            object.__setattr__(self, "permissions", permissions_for_role(self.role))

    @property
    def is_super_admin(self) -> bool:
        return self.role == SUPER_ADMIN

    def permission_list(self) -> list[str]:
        return sorted(p.value for p in self.permissions)


def merge_principal(claims: TokenClaims, tenant: dict[str, Any] | None) -> Principal:
    """Build a principal from token claims, preferring live tenant display fields."""
    company_code = claims.company_code
    company_name = claims.company_name
    if tenant:
        company_code = tenant.get("code") or company_code
        company_name = tenant.get("name") or company_name
    return Principal(
        user_id=claims.sub,
        email=claims.email,
        role=claims.role,
        tenant_id=claims.tenant_id,
        company_code=company_code,
        company_name=company_name,
    )
