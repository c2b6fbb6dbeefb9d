from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.rbac import READ_ROLES, WRITE_ROLES, require_roles
from app.auth.schemas import CurrentUser
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import (
    FeeStructureCreate,
    FeeStructurePaginatedResponse,
    FeeStructureResponse,
    FeeStructureUpdate,
    InstallmentUpdate,
)
from . import service

router = APIRouter(prefix="/api/v1/fee-structures", tags=["fee-structures"])


@router.post(
    "",
    response_model=FeeStructureResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_fee_structure(
    payload: FeeStructureCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*WRITE_ROLES)),
) -> FeeStructureResponse:
    try:
        return await service.create_fee_structure(db, current_user.tenant_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=FeeStructurePaginatedResponse)
async def list_fee_structures(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None),
    academic_year: Optional[str] = Query(None),
    class_name: Optional[str] = Query(None, description="Structures applicable to this class"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*READ_ROLES)),
) -> FeeStructurePaginatedResponse:
    return await service.list_fee_structures(
        db,
        current_user.tenant_id,
        page=page,
        limit=limit,
        search=search,
        academic_year=academic_year,
        class_name=class_name,
    )


@router.get("/{fee_structure_id}", response_model=FeeStructureResponse)
async def get_fee_structure(
    fee_structure_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*READ_ROLES)),
) -> FeeStructureResponse:
    try:
        return await service.get_fee_structure(db, current_user.tenant_id, fee_structure_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/{fee_structure_id}", response_model=FeeStructureResponse)
async def update_fee_structure(
    fee_structure_id: UUID,
    payload: FeeStructureUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*WRITE_ROLES)),
) -> FeeStructureResponse:
    try:
        return await service.update_fee_structure(db, current_user.tenant_id, fee_structure_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.patch(
    "/{fee_structure_id}/installments/{installment_id}",
    response_model=FeeStructureResponse,
)
async def update_installment(
    fee_structure_id: UUID,
    installment_id: UUID,
    payload: InstallmentUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*WRITE_ROLES)),
) -> FeeStructureResponse:
    try:
        return await service.update_installment(
            db, current_user.tenant_id, fee_structure_id, installment_id, payload
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/{fee_structure_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_fee_structure(
    fee_structure_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles(*WRITE_ROLES)),
) -> None:
    try:
        await service.delete_fee_structure(db, current_user.tenant_id, fee_structure_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
