from enum import Enum


class UserRole(str, Enum):
    SUPER_ADMIN = "super_admin"
    CAMPUS_ADMIN = "campus_admin"
    ACCOUNTANT = "accountant"
    VIEWER = "viewer"


class UserStatus(str, Enum):
    active = "active"
    inactive = "inactive"


class TenantLanguage(str, Enum):
    en = "en"
    ur = "ur"


class StudentStatus(str, Enum):
    active = "active"
    inactive = "inactive"
    graduated = "graduated"


class InstallmentStatus(str, Enum):
    pending = "pending"
    paid = "paid"
    overdue = "overdue"


class PaymentMethod(str, Enum):
    cash = "cash"
    bank_transfer = "bank_transfer"
    cheque = "cheque"
    online = "online"


class PaymentStatus(str, Enum):
    pending = "pending"
    completed = "completed"
    failed = "failed"
    refunded = "refunded"


class ExportFormat(str, Enum):
    csv = "csv"
    xlsx = "xlsx"
