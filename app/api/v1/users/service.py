from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.auth.security import hash_password
from app.core.enums import UserRole, UserStatus
from app.core.exceptions import ConflictError, ValidationFailedError
from app.db.store import EntityStore

from .schemas import UserCreate, UserResponse, UserUpdate


async def create_user(
    db: AsyncSession,
    tenant_id: UUID,
    payload: UserCreate,
) -> UserResponse:
    if payload.role == UserRole.SUPER_ADMIN:
        raise ValidationFailedError("super_admin is created at onboarding only")
    email = payload.email.lower()
    taken = (
        await db.execute(select(User.id).where(func.lower(User.email) == email))
    ).scalar_one_or_none()
    if taken:
        raise ConflictError("Email is already in use")
    try:
        user = await EntityStore(db, User).create(
            tenant_id,
            name=payload.name.strip(),
            email=email,
            password_hash=hash_password(payload.password),
            role=payload.role.value,
            status=UserStatus.active.value,
        )
        await db.commit()
        await db.refresh(user)
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Email is already in use")
    return UserResponse.model_validate(user)


async def list_users(db: AsyncSession, tenant_id: UUID) -> List[UserResponse]:
    users = await EntityStore(db, User).find(tenant_id, order_by=[User.name])
    return [UserResponse.model_validate(u) for u in users]


async def update_user(
    db: AsyncSession,
    tenant_id: UUID,
    user_id: UUID,
    payload: UserUpdate,
) -> Optional[UserResponse]:
    data = payload.model_dump(exclude_unset=True, exclude_none=True)
    if data.get("role") == UserRole.SUPER_ADMIN:
        raise ValidationFailedError("super_admin is created at onboarding only")
    if "name" in data:
        data["name"] = data["name"].strip()
    for key in ("role", "status"):
        if key in data:
            data[key] = data[key].value
    user = await EntityStore(db, User).update(tenant_id, user_id, **data)
    if user is None:
        return None
    await db.commit()
    await db.refresh(user)
    return UserResponse.model_validate(user)
