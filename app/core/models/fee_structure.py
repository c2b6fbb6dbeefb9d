"""Fee structure with its applicable classes and ordered installments (always loaded with the parent)."""

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.core.enums import InstallmentStatus
from app.db.session import Base


class FeeStructure(Base):
    """
    Fee plan for an academic year. Applies to every active student whose class
    is listed in applicable_classes; the link is computed, never stored per student.
    sum(installments.amount) == total_amount is checked at creation only.
    """

    __tablename__ = "fee_structures"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    total_amount = Column(Numeric(12, 2), nullable=False)
    academic_year = Column(String(20), nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    classes = relationship(
        "FeeStructureClass",
        back_populates="fee_structure",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="FeeStructureClass.class_name",
    )
    installments = relationship(
        "Installment",
        back_populates="fee_structure",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="Installment.position",
    )

    @property
    def applicable_classes(self) -> List[str]:
        return sorted(c.class_name for c in self.classes)

    def find_installment(self, installment_id) -> Optional["Installment"]:
        for inst in self.installments:
            if str(inst.id) == str(installment_id):
                return inst
        return None


class FeeStructureClass(Base):
    """Class label a fee structure applies to."""

    __tablename__ = "fee_structure_classes"
    __table_args__ = (
        UniqueConstraint("fee_structure_id", "class_name", name="uq_fee_structure_class"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    fee_structure_id = Column(
        UUID(as_uuid=True),
        ForeignKey("fee_structures.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    class_name = Column(String(50), nullable=False, index=True)

    fee_structure = relationship("FeeStructure", back_populates="classes")


class Installment(Base):
    """
    Scheduled part payment of a fee structure. status is set by payment intake and
    refunds; it is a projection of completed payments, not the source of truth.
    """

    __tablename__ = "fee_installments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    fee_structure_id = Column(
        UUID(as_uuid=True),
        ForeignKey("fee_structures.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position = Column(Integer, nullable=False, default=0)
    label = Column(String(100), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    due_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default=InstallmentStatus.pending.value)  # pending, paid, overdue
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    fee_structure = relationship("FeeStructure", back_populates="installments")
