import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import RefreshToken, User
from app.auth.schemas import (
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
    TenantInfo,
    UserInfo,
)
from app.auth.security import (
    create_access_token,
    create_refresh_token,
    hash_password,
    verify_password,
)
from app.core.enums import UserRole, UserStatus
from app.core.exceptions import ConflictError, ServiceError
from app.core.models import Tenant
from app.core.tenant_service import normalize_domain

logger = logging.getLogger(__name__)


async def register_tenant_and_admin(
    db: AsyncSession, payload: RegisterRequest
) -> RegisterResponse:
    domain = normalize_domain(payload.domain)

    # 1. Domain and admin email must be unused
    existing_tenant = (
        await db.execute(select(Tenant.id).where(Tenant.domain == domain))
    ).scalar_one_or_none()
    if existing_tenant:
        raise ConflictError("Domain is already registered")
    existing_user = (
        await db.execute(select(User.id).where(func.lower(User.email) == payload.admin_email.lower()))
    ).scalar_one_or_none()
    if existing_user:
        raise ConflictError("Email is already in use")

    try:
        # 2. Create tenant
        tenant = Tenant(
            name=payload.institution_name.strip(),
            domain=domain,
            contact_email=payload.contact_email,
            contact_phone=payload.contact_phone,
            currency=payload.currency.strip().upper(),
            language=payload.language.value,
            timezone=payload.timezone,
        )
        db.add(tenant)
        await db.flush()  # to populate tenant.id

        # 3. Create super admin
        admin_user = User(
            tenant_id=tenant.id,
            name=payload.admin_name.strip(),
            email=payload.admin_email.lower(),
            password_hash=hash_password(payload.password),
            role=UserRole.SUPER_ADMIN.value,
            status=UserStatus.active.value,
        )
        db.add(admin_user)

        await db.commit()
        await db.refresh(tenant)

    except IntegrityError as e:
        await db.rollback()
        raise ConflictError("Conflict while creating tenant or user") from e
    except Exception as e:
        await db.rollback()
        logger.exception("Tenant registration failed for domain %s", domain)
        raise ServiceError(
            "Failed to create account", status.HTTP_500_INTERNAL_SERVER_ERROR
        ) from e

    logger.info("Registered tenant %s (%s)", tenant.id, tenant.domain)
    return RegisterResponse(
        success=True,
        message="Account created successfully",
        tenant_id=tenant.id,
        domain=tenant.domain,
    )


async def login_user(db: AsyncSession, payload: LoginRequest) -> LoginResponse:
    # 1. Find user by email (case-insensitive)
    user_result = await db.execute(
        select(User).where(func.lower(User.email) == func.lower(payload.email))
    )
    user: Optional[User] = user_result.scalar_one_or_none()
    if not user:
        raise ServiceError("Invalid credentials", status.HTTP_401_UNAUTHORIZED)

    # 2. Verify password hash
    if not verify_password(payload.password, user.password_hash):
        raise ServiceError("Invalid credentials", status.HTTP_401_UNAUTHORIZED)

    # 3. Check user status
    if user.status != UserStatus.active.value:
        raise ServiceError("User is inactive", status.HTTP_403_FORBIDDEN)

    tenant = await db.get(Tenant, user.tenant_id)
    if not tenant:
        raise ServiceError("Tenant not found", status.HTTP_403_FORBIDDEN)

    issued_at = datetime.now(timezone.utc)

    # 4. Access token carries tenant and role; refresh token is stored
    access_token = create_access_token(
        subject={
            "sub": str(user.id),
            "user_id": str(user.id),
            "tenant_id": str(user.tenant_id),
            "role": user.role,
            "iat": int(issued_at.timestamp()),
        }
    )
    refresh_token_str, refresh_expires_at = create_refresh_token()
    db.add(
        RefreshToken(
            user_id=user.id,
            token=refresh_token_str,
            expires_at=refresh_expires_at,
        )
    )
    user.last_login = issued_at
    try:
        await db.commit()
    except Exception as e:
        await db.rollback()
        raise ServiceError(
            "Failed to persist authentication state",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        ) from e

    return LoginResponse(
        access_token=access_token,
        refresh_token=refresh_token_str,
        user=UserInfo(id=user.id, name=user.name, email=user.email, role=user.role),
        tenant=TenantInfo(
            id=tenant.id,
            name=tenant.name,
            domain=tenant.domain,
            currency=tenant.currency,
        ),
        issued_at=issued_at,
    )
