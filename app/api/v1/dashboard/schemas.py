"""Dashboard schemas (camelCase wire format)."""

from typing import List

from app.core.schemas import CamelModel, Money


class DashboardStats(CamelModel):
    total_students: int
    total_fee_structures: int
    total_payments: int
    total_revenue: Money
    pending_payments: int
    defaulters: int


class RevenueTrends(CamelModel):
    labels: List[str]
    data: List[Money]
