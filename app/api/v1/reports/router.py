from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import READ_ROLES, WRITE_ROLES, require_roles
from app.auth.schemas import CurrentUser
from app.core.config import settings
from app.core.enums import ExportFormat
from app.db.session import get_db

from .export import XLSX_MEDIA_TYPE, defaulters_to_csv, defaulters_to_xlsx, export_filename
from .schemas import DefaultersReport
from . import service

router = APIRouter(prefix="/api/v1/reports", tags=["reports"])


@router.get("/defaulters", response_model=DefaultersReport)
async def get_defaulters(
    days_overdue: int = Query(settings.default_overdue_days, ge=0, description="Overdue threshold in days"),
    class_name: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*READ_ROLES)),
) -> DefaultersReport:
    return await service.compute_defaulters(db, current_user.tenant_id, days_overdue, class_name=class_name)


@router.get("/defaulters/export")
async def export_defaulters(
    export_format: ExportFormat = Query(ExportFormat.csv, alias="format"),
    days_overdue: int = Query(settings.default_overdue_days, ge=0),
    class_name: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*WRITE_ROLES)),
) -> Response:
    report = await service.compute_defaulters(db, current_user.tenant_id, days_overdue, class_name=class_name)
    filename = export_filename(export_format.value, date.today())
    if export_format == ExportFormat.xlsx:
        return Response(
            content=defaulters_to_xlsx(report),
            media_type=XLSX_MEDIA_TYPE,
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )
    return Response(
        content=defaulters_to_csv(report),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
