"""
Payment intake: record a payment against one installment, then issue the receipt
and notify the student.

The payment and the installment status are committed together before anything
else runs. Receipt generation and notifications are best-effort: their failures
are logged and never undo the payment.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.enums import InstallmentStatus, PaymentStatus
from app.core.exceptions import ConflictError, NotFoundError, ValidationFailedError
from app.core.models import FeeStructure, Installment, Payment, Student, Tenant
from app.db.store import EntityStore
from app.services.notification_dispatcher import ContactInfo, NotificationDispatcher
from app.services.receipt_service import ReceiptData, ReceiptGenerator

from .schemas import PaymentCreate, PaymentPaginatedResponse, PaymentResponse, RefundRequest

logger = logging.getLogger(__name__)


def receipt_number(payment: Payment) -> str:
    return f"RCPT-{payment.id.hex[:10].upper()}"


def receipt_link(payment: Payment) -> str:
    """Absolute link sent to students; served by the receipt download route."""
    return f"{settings.app_url.rstrip('/')}/api/v1/payments/{payment.id}/receipt"


def _replay(existing: Payment, payload: PaymentCreate) -> PaymentResponse:
    """Return the payment recorded under an idempotency key, provided the request matches it."""
    same = (
        existing.student_id == payload.student_id
        and existing.fee_structure_id == payload.fee_structure_id
        and existing.installment_id == payload.installment_id
        and Decimal(existing.amount) == payload.amount
    )
    if not same:
        raise ConflictError("Idempotency key already used for a different payment")
    return PaymentResponse.model_validate(existing)


async def _get_payment(db: AsyncSession, tenant_id: UUID, payment_id: UUID) -> Payment:
    payment = await EntityStore(db, Payment).get(tenant_id, payment_id)
    if not payment:
        raise NotFoundError("Payment not found")
    return payment


async def _attach_receipt(
    db: AsyncSession,
    tenant: Tenant,
    payment: Payment,
    student: Student,
    fs: FeeStructure,
    inst: Installment,
    receipt_generator: ReceiptGenerator,
) -> None:
    try:
        data = ReceiptData(
            receipt_number=receipt_number(payment),
            issued_at=payment.payment_date,
            institution_name=tenant.name,
            institution_address=tenant.address_line,
            currency=tenant.currency,
            student_name=student.name,
            roll_number=student.roll_number,
            class_name=student.class_name,
            fee_structure_title=fs.title,
            installment_label=inst.label,
            amount=payment.amount,
            payment_method=payment.payment_method,
            transaction_id=payment.transaction_id,
        )
        url = await run_in_threadpool(receipt_generator.generate, data)
    except Exception:
        logger.exception("Receipt generation failed for payment %s", payment.id)
        return

    try:
        payment.receipt_url = url
        await db.commit()
    except Exception:
        logger.exception("Could not store receipt url for payment %s", payment.id)
        await db.rollback()
        await db.refresh(payment)


async def _notify_receipt(
    tenant: Tenant,
    payment: Payment,
    student: Student,
    dispatcher: NotificationDispatcher,
) -> None:
    if not payment.receipt_url:
        logger.warning("Payment %s has no receipt; receipt notification skipped", payment.id)
        return
    try:
        sent = await dispatcher.send_receipt(
            ContactInfo(email=student.email, phone=student.phone),
            student.name,
            payment.amount,
            receipt_link(payment),
            currency=tenant.currency,
        )
        if not sent:
            logger.warning("Receipt notification for payment %s was not delivered", payment.id)
    except Exception:
        logger.exception("Receipt notification failed for payment %s", payment.id)


async def record_payment(
    db: AsyncSession,
    tenant_id: UUID,
    payload: PaymentCreate,
    receipt_generator: ReceiptGenerator,
    dispatcher: NotificationDispatcher,
) -> PaymentResponse:
    student = await EntityStore(db, Student).get(tenant_id, payload.student_id)
    if not student:
        raise NotFoundError("Student not found")
    fs = await EntityStore(db, FeeStructure).get(tenant_id, payload.fee_structure_id)
    if not fs:
        raise NotFoundError("Fee structure not found")
    inst = fs.find_installment(payload.installment_id)
    if not inst:
        raise NotFoundError("Installment not found")

    payments = EntityStore(db, Payment)
    if payload.idempotency_key:
        existing = await payments.find_one(tenant_id, idempotency_key=payload.idempotency_key)
        if existing:
            logger.info("Idempotency key %s replayed; returning payment %s", payload.idempotency_key, existing.id)
            return _replay(existing, payload)

    try:
        payment = await payments.create(
            tenant_id,
            student_id=student.id,
            fee_structure_id=fs.id,
            installment_id=inst.id,
            amount=payload.amount,
            payment_date=datetime.now(timezone.utc),
            payment_method=payload.payment_method.value,
            transaction_id=payload.transaction_id,
            status=PaymentStatus.completed.value,
            notes=payload.notes,
            idempotency_key=payload.idempotency_key,
        )
        inst.status = InstallmentStatus.paid.value
        await db.commit()
    except IntegrityError:
        await db.rollback()
        if payload.idempotency_key:
            existing = await payments.find_one(tenant_id, idempotency_key=payload.idempotency_key)
            if existing:
                return _replay(existing, payload)
        raise ConflictError("Payment could not be recorded")
    await db.refresh(payment)
    logger.info(
        "Recorded payment %s of %s for student %s, installment %s (tenant %s)",
        payment.id, payment.amount, student.id, inst.id, tenant_id,
    )

    tenant = await db.get(Tenant, tenant_id)
    await _attach_receipt(db, tenant, payment, student, fs, inst, receipt_generator)
    await _notify_receipt(tenant, payment, student, dispatcher)
    return PaymentResponse.model_validate(payment)


async def list_payments(
    db: AsyncSession,
    tenant_id: UUID,
    page: int = 1,
    limit: int = 10,
    student_id: Optional[UUID] = None,
    status_filter: Optional[str] = None,
) -> PaymentPaginatedResponse:
    equals = {}
    if student_id:
        equals["student_id"] = student_id
    if status_filter:
        equals["status"] = status_filter
    store = EntityStore(db, Payment)
    total = await store.count(tenant_id, **equals)
    items = await store.find(
        tenant_id,
        order_by=[Payment.payment_date.desc()],
        limit=limit,
        offset=(page - 1) * limit,
        **equals,
    )
    return PaymentPaginatedResponse(
        payments=[PaymentResponse.model_validate(p) for p in items],
        total=total,
        page=page,
        limit=limit,
    )


async def get_payment(db: AsyncSession, tenant_id: UUID, payment_id: UUID) -> PaymentResponse:
    return PaymentResponse.model_validate(await _get_payment(db, tenant_id, payment_id))


async def get_receipt_path(
    db: AsyncSession,
    tenant_id: UUID,
    payment_id: UUID,
    receipt_generator: ReceiptGenerator,
):
    payment = await _get_payment(db, tenant_id, payment_id)
    if not payment.receipt_url:
        raise NotFoundError("Receipt not available")
    path = receipt_generator.path_for(payment.receipt_url)
    if not path.is_file():
        raise NotFoundError("Receipt not available")
    return path


async def refund_payment(
    db: AsyncSession,
    tenant_id: UUID,
    payment_id: UUID,
    payload: RefundRequest,
) -> PaymentResponse:
    """
    Mark a completed payment refunded. The installment goes back to pending unless
    another completed payment still covers it.
    """
    payments = EntityStore(db, Payment)
    payment = await _get_payment(db, tenant_id, payment_id)
    if payment.status != PaymentStatus.completed.value:
        raise ValidationFailedError("Only completed payments can be refunded")

    payment.status = PaymentStatus.refunded.value
    if payload.reason:
        payment.notes = f"{payment.notes}\nRefund: {payload.reason}" if payment.notes else f"Refund: {payload.reason}"
    await db.flush()

    still_covered = await payments.count(
        tenant_id,
        fee_structure_id=payment.fee_structure_id,
        installment_id=payment.installment_id,
        status=PaymentStatus.completed.value,
    )
    fs = await EntityStore(db, FeeStructure).get(tenant_id, payment.fee_structure_id)
    inst = fs.find_installment(payment.installment_id) if fs else None
    if inst:
        inst.status = InstallmentStatus.paid.value if still_covered else InstallmentStatus.pending.value

    await db.commit()
    await db.refresh(payment)
    logger.info("Refunded payment %s (tenant %s)", payment.id, tenant_id)
    return PaymentResponse.model_validate(payment)
