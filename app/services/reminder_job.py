"""
Daily fee reminder run.

For every tenant, active student and applicable installment without a completed
payment, a reminder goes out when the installment is due in exactly
``days_before`` days or today. No record of sent reminders is kept, so running
twice on the same day sends twice.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Set
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.reports.service import (
    PaymentKey,
    active_students,
    completed_payment_keys,
    structures_for_class,
)
from app.core.config import settings
from app.core.models import FeeStructure, Student, Tenant
from app.services.notification_dispatcher import ContactInfo, NotificationDispatcher

logger = logging.getLogger(__name__)


@dataclass
class DueReminder:
    student_id: UUID
    student_name: str
    contact: ContactInfo
    fee_structure_id: UUID
    installment_id: UUID
    amount: Decimal
    due_date: date
    days_until_due: int


@dataclass
class ReminderRunResult:
    reminders_sent: int = 0
    # students (or tenants) whose processing raised
    failures: int = 0
    students_checked: int = 0
    undelivered: int = 0
    errors: List[str] = field(default_factory=list)


def reminder_windows(days_before: int) -> Set[int]:
    return {days_before, 0}


def reminders_for_student(
    student: Student,
    structures: List[FeeStructure],
    paid: Set[PaymentKey],
    today: date,
    days_before: int,
) -> List[DueReminder]:
    windows = reminder_windows(days_before)
    due: List[DueReminder] = []
    for fs in structures:
        for inst in fs.installments:
            if (student.id, fs.id, inst.id) in paid:
                continue
            days_until_due = (inst.due_date - today).days
            if days_until_due not in windows:
                continue
            due.append(
                DueReminder(
                    student_id=student.id,
                    student_name=student.name,
                    contact=ContactInfo(email=student.email, phone=student.phone),
                    fee_structure_id=fs.id,
                    installment_id=inst.id,
                    amount=inst.amount,
                    due_date=inst.due_date,
                    days_until_due=days_until_due,
                )
            )
    return due


async def _load_tenant(db: AsyncSession, tenant_id: UUID):
    students = await active_students(db, tenant_id)
    paid = await completed_payment_keys(db, tenant_id)
    structures: Dict[str, List[FeeStructure]] = {}
    for class_name in sorted({s.class_name for s in students}):
        structures[class_name] = await structures_for_class(db, tenant_id, class_name)
    return students, paid, structures


async def find_due_reminders(
    db: AsyncSession,
    tenant_id: UUID,
    today: date,
    days_before: int = 7,
) -> List[DueReminder]:
    """Reminders that a run on ``today`` would send for one tenant, without sending them."""
    students, paid, structures = await _load_tenant(db, tenant_id)
    due: List[DueReminder] = []
    for student in students:
        due.extend(reminders_for_student(student, structures[student.class_name], paid, today, days_before))
    return due


class ReminderJob:
    """
    One reminder pass over all tenants. The session factory, dispatcher and
    current date are injected so the run can be driven from tests.
    """

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        dispatcher: NotificationDispatcher,
        days_before: Optional[int] = None,
    ):
        self.session_factory = session_factory
        self.dispatcher = dispatcher
        self.days_before = days_before if days_before is not None else settings.reminder_days_before

    async def run(self, today: Optional[date] = None) -> ReminderRunResult:
        today = today or date.today()
        result = ReminderRunResult()
        async with self.session_factory() as db:
            tenants = (await db.execute(select(Tenant).order_by(Tenant.created_at))).scalars().all()

        for tenant in tenants:
            # Each tenant loads in its own session and transaction
            try:
                async with self.session_factory() as db:
                    students, paid, structures = await _load_tenant(db, tenant.id)
            except Exception as e:
                logger.exception("Could not load reminder data for tenant %s", tenant.id)
                result.failures += 1
                result.errors.append(f"tenant {tenant.id}: {e}")
                continue
            for student in students:
                await self._remind_student(tenant, student, structures, paid, today, result)

        logger.info(
            "Reminder run for %s: %s sent, %s undelivered, %s failures, %s students checked",
            today.isoformat(),
            result.reminders_sent,
            result.undelivered,
            result.failures,
            result.students_checked,
        )
        return result

    async def _remind_student(
        self,
        tenant: Tenant,
        student: Student,
        structures: Dict[str, List[FeeStructure]],
        paid: Set[PaymentKey],
        today: date,
        result: ReminderRunResult,
    ) -> None:
        result.students_checked += 1
        try:
            due = reminders_for_student(
                student, structures.get(student.class_name, []), paid, today, self.days_before
            )
            for reminder in due:
                sent = await self.dispatcher.send_reminder(
                    reminder.contact,
                    reminder.student_name,
                    reminder.amount,
                    reminder.due_date,
                    currency=tenant.currency,
                )
                if sent:
                    result.reminders_sent += 1
                else:
                    result.undelivered += 1
        except Exception as e:
            logger.exception("Reminder failed for student %s (tenant %s)", student.id, tenant.id)
            result.failures += 1
            result.errors.append(f"student {student.id}: {e}")
