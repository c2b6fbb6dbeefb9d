from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import READ_ROLES, WRITE_ROLES, require_roles
from app.auth.schemas import CurrentUser
from app.core.enums import PaymentStatus
from app.core.exceptions import ServiceError
from app.db.session import get_db
from app.services.notification_dispatcher import NotificationDispatcher, get_notification_dispatcher
from app.services.receipt_service import ReceiptGenerator, get_receipt_generator

from .schemas import PaymentCreate, PaymentPaginatedResponse, PaymentResponse, RefundRequest
from . import service

router = APIRouter(prefix="/api/v1/payments", tags=["payments"])


@router.post(
    "",
    response_model=PaymentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_payment(
    payload: PaymentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*WRITE_ROLES)),
    receipt_generator: ReceiptGenerator = Depends(get_receipt_generator),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> PaymentResponse:
    try:
        return await service.record_payment(
            db, current_user.tenant_id, payload, receipt_generator, dispatcher
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=PaymentPaginatedResponse)
async def list_payments(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    student_id: Optional[UUID] = Query(None),
    payment_status: Optional[PaymentStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*READ_ROLES)),
) -> PaymentPaginatedResponse:
    return await service.list_payments(
        db,
        current_user.tenant_id,
        page=page,
        limit=limit,
        student_id=student_id,
        status_filter=payment_status.value if payment_status else None,
    )


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(
    payment_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*READ_ROLES)),
) -> PaymentResponse:
    try:
        return await service.get_payment(db, current_user.tenant_id, payment_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{payment_id}/receipt")
async def download_receipt(
    payment_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*READ_ROLES)),
    receipt_generator: ReceiptGenerator = Depends(get_receipt_generator),
) -> FileResponse:
    try:
        path = await service.get_receipt_path(db, current_user.tenant_id, payment_id, receipt_generator)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return FileResponse(path, media_type="application/pdf", filename=path.name)


@router.post("/{payment_id}/refund", response_model=PaymentResponse)
async def refund_payment(
    payment_id: UUID,
    payload: Optional[RefundRequest] = None,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*WRITE_ROLES)),
) -> PaymentResponse:
    try:
        return await service.refund_payment(
            db, current_user.tenant_id, payment_id, payload or RefundRequest()
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
