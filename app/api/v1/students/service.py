import logging
from datetime import date
from typing import Optional
from uuid import UUID

from sqlalchemy import delete, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ValidationFailedError
from app.core.models import Payment, Student
from app.db.store import EntityStore

from .schemas import (
    GuardianInfo,
    StudentCreate,
    StudentPaginatedResponse,
    StudentResponse,
    StudentUpdate,
)

logger = logging.getLogger(__name__)


def _student_to_response(s: Student) -> StudentResponse:
    return StudentResponse(
        id=s.id,
        tenant_id=s.tenant_id,
        name=s.name,
        roll_number=s.roll_number,
        class_name=s.class_name,
        section=s.section,
        email=s.email,
        phone=s.phone,
        admission_date=s.admission_date,
        status=s.status,
        guardian=GuardianInfo(
            name=s.guardian_name,
            relation=s.guardian_relation,
            phone=s.guardian_phone,
            email=s.guardian_email,
        ),
        created_at=s.created_at,
        updated_at=s.updated_at,
    )


def _guardian_columns(guardian: Optional[GuardianInfo]) -> dict:
    if guardian is None:
        return {}
    return {
        "guardian_name": guardian.name,
        "guardian_relation": guardian.relation,
        "guardian_phone": guardian.phone,
        "guardian_email": guardian.email,
    }


async def create_student(
    db: AsyncSession,
    tenant_id: UUID,
    payload: StudentCreate,
) -> StudentResponse:
    store = EntityStore(db, Student)
    roll_number = payload.roll_number.strip()
    if await store.find_one(tenant_id, roll_number=roll_number):
        raise ValidationFailedError("Roll number already exists")

    student = await store.create(
        tenant_id,
        name=payload.name.strip(),
        roll_number=roll_number,
        class_name=payload.class_name.strip(),
        section=(payload.section or "").strip() or None,
        email=payload.email,
        phone=payload.phone,
        admission_date=payload.admission_date or date.today(),
        status=payload.status.value,
        **_guardian_columns(payload.guardian),
    )
    await db.commit()
    await db.refresh(student)
    return _student_to_response(student)


async def list_students(
    db: AsyncSession,
    tenant_id: UUID,
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
    class_name: Optional[str] = None,
    status_filter: Optional[str] = None,
) -> StudentPaginatedResponse:
    criteria = []
    if search:
        pattern = f"%{search.strip()}%"
        criteria.append(or_(Student.name.ilike(pattern), Student.roll_number.ilike(pattern)))
    equals = {}
    if class_name:
        equals["class_name"] = class_name
    if status_filter:
        equals["status"] = status_filter

    store = EntityStore(db, Student)
    total = await store.count(tenant_id, *criteria, **equals)
    students = await store.find(
        tenant_id,
        *criteria,
        order_by=[Student.class_name, Student.roll_number],
        limit=limit,
        offset=(page - 1) * limit,
        **equals,
    )
    return StudentPaginatedResponse(
        students=[_student_to_response(s) for s in students],
        total=total,
        page=page,
        limit=limit,
    )


async def get_student(
    db: AsyncSession,
    tenant_id: UUID,
    student_id: UUID,
) -> Optional[StudentResponse]:
    student = await EntityStore(db, Student).get(tenant_id, student_id)
    if not student:
        return None
    return _student_to_response(student)


async def update_student(
    db: AsyncSession,
    tenant_id: UUID,
    student_id: UUID,
    payload: StudentUpdate,
) -> Optional[StudentResponse]:
    data = payload.model_dump(exclude_unset=True, exclude={"guardian"})
    if "status" in data and data["status"] is not None:
        data["status"] = data["status"].value
    for key in ("name", "class_name"):
        if data.get(key) is not None:
            data[key] = data[key].strip()
    # name/class_name/status are NOT NULL
    data = {k: v for k, v in data.items() if v is not None or k in ("section", "email", "phone")}
    data.update(_guardian_columns(payload.guardian))

    student = await EntityStore(db, Student).update(tenant_id, student_id, **data)
    if not student:
        return None
    await db.commit()
    await db.refresh(student)
    return _student_to_response(student)


async def delete_student(
    db: AsyncSession,
    tenant_id: UUID,
    student_id: UUID,
) -> bool:
    """Hard delete (explicit admin action); cascades to the student's payments."""
    store = EntityStore(db, Student)
    if not await store.get(tenant_id, student_id):
        return False
    result = await db.execute(
        delete(Payment).where(Payment.tenant_id == tenant_id, Payment.student_id == student_id)
    )
    await store.delete(tenant_id, student_id)
    await db.commit()
    logger.info(
        "Deleted student %s of tenant %s with %s payment(s)", student_id, tenant_id, result.rowcount
    )
    return True
