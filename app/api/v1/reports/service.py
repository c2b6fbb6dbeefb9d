"""
Reconciliation engine: matches the installments every active student owes against
completed payments and reports the ones overdue past a threshold.

A fee structure applies to a student when the student's class is one of its
applicable classes. An installment is settled only by a completed payment for the
exact (tenant, student, fee structure, installment); the cached installment status
is not consulted. Every call is a full recompute for one tenant.
"""

from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Set, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import PaymentStatus, StudentStatus
from app.core.models import FeeStructure, FeeStructureClass, Payment, Student
from app.db.store import EntityStore

from .schemas import DefaulterRecord, DefaultersReport, OverdueInstallment

PaymentKey = Tuple[UUID, UUID, UUID]


async def completed_payment_keys(db: AsyncSession, tenant_id: UUID) -> Set[PaymentKey]:
    """(student_id, fee_structure_id, installment_id) of every completed payment in the tenant."""
    payments = await EntityStore(db, Payment).find(tenant_id, status=PaymentStatus.completed.value)
    return {(p.student_id, p.fee_structure_id, p.installment_id) for p in payments}


async def structures_for_class(db: AsyncSession, tenant_id: UUID, class_name: str) -> List[FeeStructure]:
    return await EntityStore(db, FeeStructure).find(
        tenant_id,
        FeeStructure.classes.any(FeeStructureClass.class_name == class_name),
        order_by=[FeeStructure.created_at, FeeStructure.id],
    )


async def active_students(
    db: AsyncSession,
    tenant_id: UUID,
    class_name: Optional[str] = None,
) -> List[Student]:
    equals = {"status": StudentStatus.active.value}
    if class_name:
        equals["class_name"] = class_name
    return await EntityStore(db, Student).find(
        tenant_id, order_by=[Student.name, Student.roll_number], **equals
    )


async def compute_defaulters(
    db: AsyncSession,
    tenant_id: UUID,
    overdue_threshold_days: int,
    class_name: Optional[str] = None,
    today: Optional[date] = None,
) -> DefaultersReport:
    """
    Defaulters of a tenant, largest total due first.

    An unpaid installment is overdue when (today - due_date).days > overdue_threshold_days.
    Students without an overdue installment are left out. Store errors propagate; there
    is no partial report.
    """
    today = today or date.today()
    students = await active_students(db, tenant_id, class_name)
    paid = await completed_payment_keys(db, tenant_id)
    structures_by_class: Dict[str, List[FeeStructure]] = {}

    defaulters: List[DefaulterRecord] = []
    for student in students:
        if student.class_name not in structures_by_class:
            structures_by_class[student.class_name] = await structures_for_class(
                db, tenant_id, student.class_name
            )

        overdue: List[OverdueInstallment] = []
        for fs in structures_by_class[student.class_name]:
            for inst in fs.installments:
                if (student.id, fs.id, inst.id) in paid:
                    continue
                days_overdue = (today - inst.due_date).days
                if days_overdue <= overdue_threshold_days:
                    continue
                overdue.append(
                    OverdueInstallment(
                        fee_structure_id=fs.id,
                        fee_structure_title=fs.title,
                        installment_id=inst.id,
                        installment_label=inst.label,
                        amount=inst.amount,
                        due_date=inst.due_date,
                        days_overdue=days_overdue,
                    )
                )
        if not overdue:
            continue

        defaulters.append(
            DefaulterRecord(
                student_id=student.id,
                name=student.name,
                roll_number=student.roll_number,
                class_name=student.class_name,
                total_due=sum((o.amount for o in overdue), Decimal("0")),
                overdue_installments=overdue,
            )
        )

    # sort is stable, so equal totals keep name/roll number order
    defaulters.sort(key=lambda d: d.total_due, reverse=True)
    return DefaultersReport(
        count=len(defaulters),
        total_due=sum((d.total_due for d in defaulters), Decimal("0")),
        defaulters=defaulters,
    )
