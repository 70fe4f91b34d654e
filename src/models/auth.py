from pydantic import BaseModel, EmailStr, Field


class LoginRequest(BaseModel):
    company_code: str | None = None
    email: EmailStr
    password: str = Field(min_length=8)


class LoginUser(BaseModel):
    id: str
    email: str
    full_name: str | None
    role: str
    permissions: list[str]
    is_super_admin: bool


class LoginCompany(BaseModel):
    id: str
    code: str
    name: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: LoginUser
    company: LoginCompany | None = None


class MeResponse(BaseModel):
    user_id: str
    email: str
    role: str
    tenant_id: str | None
    is_super_admin: bool
    company_code: str | None
    company_name: str | None
    permissions: list[str]
