"""
Dashboard counters. pendingPayments and defaulters read the cached installment
status rather than reconciling against payments; use the defaulters report for
the reconciled figure.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import InstallmentStatus, PaymentStatus, StudentStatus
from app.core.models import FeeStructure, Installment, Payment, Student
from app.db.store import EntityStore

from .schemas import DashboardStats, RevenueTrends


def _to_decimal(val) -> Decimal:
    if val is None:
        return Decimal("0")
    return val if isinstance(val, Decimal) else Decimal(str(val))


def _shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


async def get_stats(
    db: AsyncSession,
    tenant_id: UUID,
    today: Optional[date] = None,
) -> DashboardStats:
    today = today or date.today()
    installments = EntityStore(db, Installment)

    revenue = (
        await db.execute(
            select(func.coalesce(func.sum(Payment.amount), 0)).where(
                Payment.tenant_id == tenant_id,
                Payment.status == PaymentStatus.completed.value,
            )
        )
    ).scalar()

    return DashboardStats(
        total_students=await EntityStore(db, Student).count(tenant_id, status=StudentStatus.active.value),
        total_fee_structures=await EntityStore(db, FeeStructure).count(tenant_id),
        total_payments=await EntityStore(db, Payment).count(tenant_id),
        total_revenue=_to_decimal(revenue),
        pending_payments=await installments.count(tenant_id, status=InstallmentStatus.pending.value),
        defaulters=await installments.count(
            tenant_id,
            Installment.due_date < today,
            status=InstallmentStatus.pending.value,
        ),
    )


async def get_revenue_trends(
    db: AsyncSession,
    tenant_id: UUID,
    months: int = 6,
    today: Optional[date] = None,
) -> RevenueTrends:
    """Completed payment totals per calendar month, oldest month first, current month last."""
    today = today or date.today()
    buckets: List[Tuple[int, int]] = [
        _shift_month(today.year, today.month, -offset) for offset in range(months - 1, -1, -1)
    ]
    start_year, start_month = buckets[0]

    payments = await EntityStore(db, Payment).find(
        tenant_id,
        Payment.payment_date >= datetime(start_year, start_month, 1, tzinfo=timezone.utc),
        status=PaymentStatus.completed.value,
    )
    totals: Dict[Tuple[int, int], Decimal] = {b: Decimal("0") for b in buckets}
    for p in payments:
        key = (p.payment_date.year, p.payment_date.month)
        if key in totals:
            totals[key] += _to_decimal(p.amount)

    return RevenueTrends(
        labels=[date(y, m, 1).strftime("%b %Y") for y, m in buckets],
        data=[totals[b] for b in buckets],
    )
