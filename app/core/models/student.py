"""Student enrolled at a tenant. Class is a plain label matched against fee structure applicable classes."""

import uuid
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID

from app.core.enums import StudentStatus
from app.db.session import Base


class Student(Base):
    __tablename__ = "students"
    __table_args__ = (
        UniqueConstraint("tenant_id", "roll_number", name="uq_student_tenant_roll_number"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    roll_number = Column(String(50), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)
    class_name = Column(String(50), nullable=False, index=True)
    section = Column(String(20), nullable=True)
    admission_date = Column(Date, nullable=True)
    status = Column(String(20), nullable=False, default=StudentStatus.active.value)  # active, inactive, graduated

    guardian_name = Column(String(100), nullable=True)
    guardian_relation = Column(String(50), nullable=True)
    guardian_phone = Column(String(20), nullable=True)
    guardian_email = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
