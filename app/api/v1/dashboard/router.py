from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import READ_ROLES, require_roles
from app.auth.schemas import CurrentUser
from app.db.session import get_db

from .schemas import DashboardStats, RevenueTrends
from . import service

router = APIRouter(prefix="/api/v1/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=DashboardStats)
async def get_stats(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*READ_ROLES)),
) -> DashboardStats:
    return await service.get_stats(db, current_user.tenant_id)


@router.get("/trends", response_model=RevenueTrends)
async def get_trends(
    months: int = Query(6, ge=1, le=24),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*READ_ROLES)),
) -> RevenueTrends:
    return await service.get_revenue_trends(db, current_user.tenant_id, months=months)
