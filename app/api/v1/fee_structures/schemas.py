"""Fee structure schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from app.core.enums import InstallmentStatus


def _clean_classes(classes: Optional[List[str]]) -> Optional[List[str]]:
    if classes is None:
        return None
    seen: List[str] = []
    for c in classes:
        c = c.strip()
        if c and c not in seen:
            seen.append(c)
    if not seen:
        raise ValueError("At least one applicable class is required")
    return seen


# --- Installment ---
class InstallmentCreate(BaseModel):
    label: str = Field(..., max_length=100)
    amount: Decimal = Field(..., ge=0)
    due_date: date


class InstallmentUpdate(BaseModel):
    """Edits are not checked against the structure total."""

    label: Optional[str] = Field(None, max_length=100)
    amount: Optional[Decimal] = Field(None, ge=0)
    due_date: Optional[date] = None
    status: Optional[InstallmentStatus] = None


class InstallmentResponse(BaseModel):
    id: UUID
    label: str
    amount: Decimal
    due_date: date
    status: InstallmentStatus

    class Config:
        from_attributes = True


# --- Fee Structure ---
class FeeStructureCreate(BaseModel):
    title: str = Field(..., max_length=100)
    description: Optional[str] = None
    total_amount: Decimal = Field(..., ge=0)
    academic_year: str = Field(..., max_length=20)
    applicable_classes: List[str] = Field(..., min_length=1)
    installments: List[InstallmentCreate] = Field(..., min_length=1)

    @field_validator("applicable_classes")
    @classmethod
    def clean_applicable_classes(cls, v):
        return _clean_classes(v)


class FeeStructureUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    academic_year: Optional[str] = Field(None, max_length=20)
    applicable_classes: Optional[List[str]] = None

    @field_validator("applicable_classes")
    @classmethod
    def clean_applicable_classes(cls, v):
        return _clean_classes(v)


class FeeStructureResponse(BaseModel):
    id: UUID
    tenant_id: UUID
    title: str
    description: Optional[str] = None
    total_amount: Decimal
    academic_year: str
    applicable_classes: List[str]
    installments: List[InstallmentResponse]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class FeeStructurePaginatedResponse(BaseModel):
    fee_structures: List[FeeStructureResponse]
    total: int
    page: int
    limit: int
