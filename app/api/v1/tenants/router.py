from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.rbac import ADMIN_ROLES, require_roles
from app.auth.schemas import CurrentUser
from app.core import tenant_service
from app.core.exceptions import ServiceError
from app.core.schemas import TenantResponse, TenantUpdate
from app.db.session import get_db

router = APIRouter(prefix="/api/v1/tenants", tags=["tenants"])


@router.get("/me", response_model=TenantResponse)
async def get_my_tenant(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> TenantResponse:
    try:
        return await tenant_service.get_tenant(db, current_user.tenant_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/me", response_model=TenantResponse)
async def update_my_tenant(
    payload: TenantUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*ADMIN_ROLES)),
) -> TenantResponse:
    try:
        return await tenant_service.update_tenant(db, current_user.tenant_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
