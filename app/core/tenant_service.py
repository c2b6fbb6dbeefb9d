"""
Tenant service: domain normalization, lookup and settings updates.

- domain is the institution's public unique identifier (lower-cased, no scheme).
- tenant_id (UUID) remains the only primary key and FK target.
"""
import re
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationFailedError
from app.core.models import Tenant
from app.core.schemas import TenantResponse, TenantUpdate

_DOMAIN_RE = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?(\.[a-z0-9]([a-z0-9-]*[a-z0-9])?)*$")


def normalize_domain(domain: str) -> str:
    """Lower-case, strip scheme/path/whitespace. Raises ValidationFailedError if not a hostname."""
    value = domain.strip().lower()
    value = re.sub(r"^[a-z]+://", "", value)
    value = value.split("/", 1)[0]
    if not value or not _DOMAIN_RE.match(value):
        raise ValidationFailedError("Invalid domain")
    return value


def _tenant_to_response(tenant: Tenant) -> TenantResponse:
    return TenantResponse(
        id=tenant.id,
        name=tenant.name,
        domain=tenant.domain,
        address_street=tenant.address_street,
        address_city=tenant.address_city,
        address_state=tenant.address_state,
        address_country=tenant.address_country,
        address_postal_code=tenant.address_postal_code,
        contact_email=tenant.contact_email,
        contact_phone=tenant.contact_phone,
        currency=tenant.currency,
        language=tenant.language,
        timezone=tenant.timezone,
        created_at=tenant.created_at,
        updated_at=tenant.updated_at,
    )


async def get_tenant(db: AsyncSession, tenant_id: UUID) -> TenantResponse:
    tenant = await db.get(Tenant, tenant_id)
    if tenant is None:
        raise NotFoundError("Tenant not found")
    return _tenant_to_response(tenant)


async def update_tenant(db: AsyncSession, tenant_id: UUID, payload: TenantUpdate) -> TenantResponse:
    """Contact info and settings only; domain is fixed after onboarding."""
    tenant = await db.get(Tenant, tenant_id)
    if tenant is None:
        raise NotFoundError("Tenant not found")
    data = payload.model_dump(exclude_unset=True)
    if "currency" in data and data["currency"]:
        data["currency"] = data["currency"].strip().upper()
    if "language" in data and data["language"] is not None:
        data["language"] = data["language"].value
    for key, value in data.items():
        setattr(tenant, key, value)
    await db.commit()
    await db.refresh(tenant)
    return _tenant_to_response(tenant)
