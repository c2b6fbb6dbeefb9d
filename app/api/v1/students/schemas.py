"""Students schemas."""

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from app.core.enums import StudentStatus

PHONE_PATTERN = r"^\+?[1-9]\d{1,14}$"


class GuardianInfo(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    relation: Optional[str] = Field(None, max_length=50)
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    email: Optional[EmailStr] = None


class StudentCreate(BaseModel):
    name: str = Field(..., max_length=100)
    roll_number: str = Field(..., max_length=50)
    class_name: str = Field(..., max_length=50)
    section: Optional[str] = Field(None, max_length=20)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    admission_date: Optional[date] = None
    status: StudentStatus = StudentStatus.active
    guardian: Optional[GuardianInfo] = None


class StudentUpdate(BaseModel):
    """roll_number is not editable after creation."""

    name: Optional[str] = Field(None, max_length=100)
    class_name: Optional[str] = Field(None, max_length=50)
    section: Optional[str] = Field(None, max_length=20)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)
    admission_date: Optional[date] = None
    status: Optional[StudentStatus] = None
    guardian: Optional[GuardianInfo] = None


class StudentResponse(BaseModel):
    id: UUID
    tenant_id: UUID
    name: str
    roll_number: str
    class_name: str
    section: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    admission_date: Optional[date] = None
    status: StudentStatus
    guardian: GuardianInfo
    created_at: datetime
    updated_at: datetime


class StudentPaginatedResponse(BaseModel):
    students: List[StudentResponse]
    total: int
    page: int
    limit: int
