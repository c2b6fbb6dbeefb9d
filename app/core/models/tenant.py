import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.session import Base


class Tenant(Base):
    """
    Tenant (institution) in the multi-tenant platform.

    - id (tenant_id): Internal primary key (UUID). Every other table carries it and every query filters on it.
    - domain: Public unique identifier of the institution (lower-cased). Never used as a foreign key.
    """

    __tablename__ = "tenants"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    domain = Column(String(100), unique=True, nullable=False, index=True)

    address_street = Column(String(255), nullable=True)
    address_city = Column(String(100), nullable=True)
    address_state = Column(String(100), nullable=True)
    address_country = Column(String(100), nullable=True)
    address_postal_code = Column(String(20), nullable=True)

    contact_email = Column(String(255), nullable=True)
    contact_phone = Column(String(50), nullable=True)

    # Settings
    currency = Column(String(10), nullable=False, default="PKR")
    language = Column(String(5), nullable=False, default="en")  # en, ur
    timezone = Column(String(100), nullable=False, default="Asia/Karachi")

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    users = relationship("User", back_populates="tenant", cascade="all, delete-orphan")

    @property
    def address_line(self) -> str:
        parts = [
            self.address_street,
            self.address_city,
            self.address_state,
            self.address_postal_code,
            self.address_country,
        ]
        return ", ".join(p for p in parts if p)
