"""
API request and response models for TenantGate REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/, audit/, and
catalog/, which own the internal domain representation. Route handlers map
between the two.

No request model carries a tenant_id: the tenant always comes from the
caller's token.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from audit.models import SessionRecord
from auth.models import Account, Role
from catalog.models import Brand

# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login.

    login is a username or an email address. tenant is the organization name;
    when omitted the server's DEFAULT_TENANT is used.
    """

    login: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=1024)
    tenant: Optional[str] = Field(default=None, max_length=255)


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user_id: str
    tenant_id: str
    role: Role


class SessionResponse(BaseModel):
    """One entry of the login/logout audit trail."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    username: str
    login_at: str
    logout_at: Optional[str] = None

    @classmethod
    def from_record(cls, record: SessionRecord) -> "SessionResponse":
        return cls(
            id=str(record.id),
            user_id=str(record.user_id),
            username=record.username,
            login_at=record.login_at,
            logout_at=record.logout_at,
        )


class LogoutResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str = "Logged out."
    session: Optional[SessionResponse] = None


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


class UserCreate(BaseModel):
    """Request body for POST /api/v1/admin/users."""

    name: str = Field(min_length=1, max_length=255)
    username: str = Field(min_length=1, max_length=100)
    email: EmailStr
    # bcrypt reads at most 72 bytes; multi-byte input is re-checked in AccountService.
    password: str = Field(min_length=8, max_length=72)
    role: Role = Role.USER
    enabled: bool = True
    phone_number: Optional[str] = Field(default=None, max_length=20)
    designation: Optional[str] = Field(default=None, max_length=100)


class UserUpdate(BaseModel):
    """Request body for PUT /api/v1/admin/users/{id}. Omitted fields stay unchanged.

    username is immutable and password changes are not part of this model.
    """

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    role: Optional[Role] = None
    phone_number: Optional[str] = Field(default=None, max_length=20)
    designation: Optional[str] = Field(default=None, max_length=100)


class UserResponse(BaseModel):
    """An account as returned by the API. password_hash is never included."""

    model_config = ConfigDict(frozen=True)

    id: str
    tenant_id: str
    name: str
    username: str
    email: str
    role: Role
    enabled: bool
    phone_number: Optional[str] = None
    designation: Optional[str] = None
    created_at: str
    updated_at: str

    @classmethod
    def from_account(cls, account: Account) -> "UserResponse":
        return cls(
            id=str(account.id),
            tenant_id=str(account.tenant_id),
            name=account.name,
            username=account.username,
            email=account.email,
            role=account.role,
            enabled=account.enabled,
            phone_number=account.phone_number,
            designation=account.designation,
            created_at=account.created_at,
            updated_at=account.updated_at,
        )


# ---------------------------------------------------------------------------
# Brands
# ---------------------------------------------------------------------------


class BrandCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=2000)
    logo: Optional[str] = Field(default=None, max_length=500)


class BrandUpdate(BaseModel):
    """Omitted fields stay unchanged; an empty description or logo clears it."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=2000)
    logo: Optional[str] = Field(default=None, max_length=500)


class BrandResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    tenant_id: str
    name: str
    description: Optional[str] = None
    logo: Optional[str] = None
    enabled: bool
    created_at: str
    updated_at: str

    @classmethod
    def from_brand(cls, brand: Brand) -> "BrandResponse":
        return cls(
            id=str(brand.id),
            tenant_id=str(brand.tenant_id),
            name=brand.name,
            description=brand.description,
            logo=brand.logo,
            enabled=brand.enabled,
            created_at=brand.created_at,
            updated_at=brand.updated_at,
        )


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class FieldError(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    message: str


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None
    fields: list[FieldError] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
