from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, model_validator

from app.core.enums import TenantLanguage, UserRole


class RegisterRequest(BaseModel):
    """Institution onboarding: creates the tenant and its first super_admin."""

    institution_name: str = Field(..., min_length=3, max_length=100)
    domain: str = Field(..., min_length=3, max_length=100, description="Unique institution domain, e.g. greenvalley.edu.pk")
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = Field(None, max_length=50)
    currency: str = Field("PKR", max_length=10)
    language: TenantLanguage = TenantLanguage.en
    timezone: str = "Asia/Karachi"

    admin_name: str = Field(..., max_length=100)
    admin_email: EmailStr
    password: str = Field(..., min_length=6)
    confirm_password: str = Field(..., min_length=6)

    @model_validator(mode="after")
    def validate_passwords(self) -> "RegisterRequest":
        if self.password != self.confirm_password:
            raise ValueError("password and confirm_password do not match")
        return self


class RegisterResponse(BaseModel):
    success: bool
    message: str
    tenant_id: UUID
    domain: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserInfo(BaseModel):
    id: UUID
    name: str
    email: EmailStr
    role: UserRole


class TenantInfo(BaseModel):
    id: UUID
    name: str
    domain: str
    currency: str


class LoginResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserInfo
    tenant: TenantInfo
    issued_at: datetime


class CurrentUser(BaseModel):
    """Lightweight representation of the authenticated user for role checks."""

    id: UUID
    tenant_id: UUID
    role: UserRole
