"""Defaulter report schemas (camelCase wire format)."""

from datetime import date
from typing import List
from uuid import UUID

from app.core.schemas import CamelModel, Money


class OverdueInstallment(CamelModel):
    fee_structure_id: UUID
    fee_structure_title: str
    installment_id: UUID
    installment_label: str
    amount: Money
    due_date: date
    days_overdue: int


class DefaulterRecord(CamelModel):
    student_id: UUID
    name: str
    roll_number: str
    class_name: str
    total_due: Money
    overdue_installments: List[OverdueInstallment]


class DefaultersReport(CamelModel):
    count: int
    total_due: Money
    defaulters: List[DefaulterRecord]
