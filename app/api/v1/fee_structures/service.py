"""Fee structure service: structures, applicable classes and installment schedules."""

import logging
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import InstallmentStatus
from app.core.exceptions import NotFoundError, ValidationFailedError
from app.core.models import FeeStructure, FeeStructureClass, Installment, Payment
from app.db.store import EntityStore

from .schemas import (
    FeeStructureCreate,
    FeeStructurePaginatedResponse,
    FeeStructureResponse,
    FeeStructureUpdate,
    InstallmentUpdate,
)

logger = logging.getLogger(__name__)


def _to_decimal(val) -> Decimal:
    if val is None:
        return Decimal("0")
    return val if isinstance(val, Decimal) else Decimal(str(val))


async def _get_structure(db: AsyncSession, tenant_id: UUID, fee_structure_id: UUID) -> FeeStructure:
    fs = await EntityStore(db, FeeStructure).get(tenant_id, fee_structure_id)
    if not fs:
        raise NotFoundError("Fee structure not found")
    return fs


async def create_fee_structure(
    db: AsyncSession,
    tenant_id: UUID,
    payload: FeeStructureCreate,
) -> FeeStructureResponse:
    installments_total = sum((_to_decimal(i.amount) for i in payload.installments), Decimal("0"))
    if installments_total != _to_decimal(payload.total_amount):
        raise ValidationFailedError(
            f"Sum of installment amounts ({installments_total}) must equal total amount ({payload.total_amount})"
        )

    fs = await EntityStore(db, FeeStructure).create(
        tenant_id,
        title=payload.title.strip(),
        description=payload.description,
        total_amount=payload.total_amount,
        academic_year=payload.academic_year.strip(),
        classes=[FeeStructureClass(class_name=c) for c in payload.applicable_classes],
        installments=[
            Installment(
                tenant_id=tenant_id,
                position=position,
                label=i.label.strip(),
                amount=i.amount,
                due_date=i.due_date,
                status=InstallmentStatus.pending.value,
            )
            for position, i in enumerate(payload.installments)
        ],
    )
    await db.commit()
    await db.refresh(fs)
    logger.info("Created fee structure %s (%s) for tenant %s", fs.id, fs.title, tenant_id)
    return FeeStructureResponse.model_validate(fs)


async def list_fee_structures(
    db: AsyncSession,
    tenant_id: UUID,
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
    academic_year: Optional[str] = None,
    class_name: Optional[str] = None,
) -> FeeStructurePaginatedResponse:
    criteria = []
    if search:
        pattern = f"%{search.strip()}%"
        criteria.append(or_(FeeStructure.title.ilike(pattern), FeeStructure.description.ilike(pattern)))
    if class_name:
        criteria.append(FeeStructure.classes.any(FeeStructureClass.class_name == class_name))
    equals = {}
    if academic_year:
        equals["academic_year"] = academic_year

    store = EntityStore(db, FeeStructure)
    total = await store.count(tenant_id, *criteria, **equals)
    items = await store.find(
        tenant_id,
        *criteria,
        order_by=[FeeStructure.created_at.desc()],
        limit=limit,
        offset=(page - 1) * limit,
        **equals,
    )
    return FeeStructurePaginatedResponse(
        fee_structures=[FeeStructureResponse.model_validate(fs) for fs in items],
        total=total,
        page=page,
        limit=limit,
    )


async def get_fee_structure(
    db: AsyncSession,
    tenant_id: UUID,
    fee_structure_id: UUID,
) -> FeeStructureResponse:
    return FeeStructureResponse.model_validate(await _get_structure(db, tenant_id, fee_structure_id))


async def update_fee_structure(
    db: AsyncSession,
    tenant_id: UUID,
    fee_structure_id: UUID,
    payload: FeeStructureUpdate,
) -> FeeStructureResponse:
    fs = await _get_structure(db, tenant_id, fee_structure_id)
    data = payload.model_dump(exclude_unset=True)
    # description is the only nullable column; an explicit null clears it
    data = {k: v for k, v in data.items() if v is not None or k == "description"}
    classes = data.pop("applicable_classes", None)
    for key, value in data.items():
        setattr(fs, key, value.strip() if isinstance(value, str) and key != "description" else value)

    if classes is not None:
        # Keep surviving rows so (fee_structure_id, class_name) never collides on flush
        for row in list(fs.classes):
            if row.class_name not in classes:
                fs.classes.remove(row)
        existing = set(fs.applicable_classes)
        for c in classes:
            if c not in existing:
                fs.classes.append(FeeStructureClass(class_name=c))

    await db.commit()
    await db.refresh(fs)
    return FeeStructureResponse.model_validate(fs)


async def update_installment(
    db: AsyncSession,
    tenant_id: UUID,
    fee_structure_id: UUID,
    installment_id: UUID,
    payload: InstallmentUpdate,
) -> FeeStructureResponse:
    fs = await _get_structure(db, tenant_id, fee_structure_id)
    inst = fs.find_installment(installment_id)
    if not inst:
        raise NotFoundError("Installment not found")
    data = payload.model_dump(exclude_unset=True, exclude_none=True)
    if "status" in data:
        data["status"] = data["status"].value
    for key, value in data.items():
        setattr(inst, key, value)
    await db.commit()
    await db.refresh(fs)
    return FeeStructureResponse.model_validate(fs)


async def delete_fee_structure(
    db: AsyncSession,
    tenant_id: UUID,
    fee_structure_id: UUID,
) -> None:
    await _get_structure(db, tenant_id, fee_structure_id)
    if await EntityStore(db, Payment).count(tenant_id, fee_structure_id=fee_structure_id):
        raise ValidationFailedError("Fee structure has recorded payments and cannot be deleted")
    await EntityStore(db, FeeStructure).delete(tenant_id, fee_structure_id)
    await db.commit()
    logger.info("Deleted fee structure %s of tenant %s", fee_structure_id, tenant_id)
