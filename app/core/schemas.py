from datetime import datetime
from decimal import Decimal
from typing import Annotated, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, PlainSerializer
from pydantic.alias_generators import to_camel

from app.core.enums import TenantLanguage

# Amounts are numbers (not strings) on the camelCase wire format
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class CamelModel(BaseModel):
    """Response model serialized with camelCase keys (report/dashboard wire format)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Tenant ---


class TenantResponse(BaseModel):
    id: UUID
    name: str
    domain: str
    address_street: Optional[str] = None
    address_city: Optional[str] = None
    address_state: Optional[str] = None
    address_country: Optional[str] = None
    address_postal_code: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    currency: str
    language: TenantLanguage
    timezone: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TenantUpdate(BaseModel):
    """Payload to update tenant contact info and settings."""

    name: Optional[str] = Field(None, min_length=3, max_length=100)
    address_street: Optional[str] = Field(None, max_length=255)
    address_city: Optional[str] = Field(None, max_length=100)
    address_state: Optional[str] = Field(None, max_length=100)
    address_country: Optional[str] = Field(None, max_length=100)
    address_postal_code: Optional[str] = Field(None, max_length=20)
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = Field(None, max_length=50)
    currency: Optional[str] = Field(None, max_length=10)
    language: Optional[TenantLanguage] = None
    timezone: Optional[str] = None
