from app.core.models.tenant import Tenant
from app.core.models.student import Student
from app.core.models.fee_structure import FeeStructure, FeeStructureClass, Installment
from app.core.models.payment import Payment

__all__ = [
    "Tenant",
    "Student",
    "FeeStructure",
    "FeeStructureClass",
    "Installment",
    "Payment",
]
