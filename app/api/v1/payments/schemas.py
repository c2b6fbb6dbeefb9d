"""Payment schemas."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.enums import PaymentMethod, PaymentStatus


class PaymentCreate(BaseModel):
    student_id: UUID
    fee_structure_id: UUID
    installment_id: UUID
    amount: Decimal = Field(..., gt=0)
    payment_method: PaymentMethod
    transaction_id: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None
    idempotency_key: Optional[str] = Field(
        None,
        max_length=100,
        description="Client token; resubmitting the same key returns the original payment",
    )


class RefundRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class PaymentResponse(BaseModel):
    id: UUID
    tenant_id: UUID
    student_id: UUID
    fee_structure_id: UUID
    installment_id: UUID
    amount: Decimal
    payment_date: datetime
    payment_method: PaymentMethod
    transaction_id: Optional[str] = None
    status: PaymentStatus
    receipt_url: Optional[str] = None
    notes: Optional[str] = None
    idempotency_key: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PaymentPaginatedResponse(BaseModel):
    payments: List[PaymentResponse]
    total: int
    page: int
    limit: int
