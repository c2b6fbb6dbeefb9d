import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import AsyncGenerator, List, Optional
from uuid import UUID

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.main import app
from app.core.enums import InstallmentStatus, PaymentMethod, PaymentStatus, StudentStatus
from app.core.models import FeeStructure, FeeStructureClass, Installment, Payment, Student, Tenant
from app.db.session import Base, get_db
from app.services.notification_dispatcher import ContactInfo, get_notification_dispatcher
from app.services.receipt_service import ReceiptGenerator, get_receipt_generator


# One in-memory database per test, shared by every session through a single connection
TEST_DATABASE_URL = "sqlite+aiosqlite://"

PASSWORD = "StrongPass123"


class FakeDispatcher:
    """Records notifications instead of sending them."""

    def __init__(self, result: bool = True):
        self.result = result
        self.reminders: List[dict] = []
        self.receipts: List[dict] = []

    async def send_reminder(self, contact: ContactInfo, student_name, amount, due_date, currency="PKR") -> bool:
        self.reminders.append(
            {"contact": contact, "student_name": student_name, "amount": amount, "due_date": due_date}
        )
        return self.result

    async def send_receipt(self, contact: ContactInfo, student_name, amount, receipt_url, currency="PKR") -> bool:
        self.receipts.append(
            {"contact": contact, "student_name": student_name, "amount": amount, "receipt_url": receipt_url}
        )
        return self.result


@pytest.fixture()
async def engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for seeding and inspecting data directly. Commit what you seed."""
    async with session_factory() as session:
        yield session


@pytest.fixture()
def dispatcher() -> FakeDispatcher:
    return FakeDispatcher()


@pytest.fixture()
def receipt_generator(tmp_path) -> ReceiptGenerator:
    return ReceiptGenerator(str(tmp_path / "receipts"))


@pytest.fixture()
async def client(session_factory, dispatcher, receipt_generator) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app; each request gets its own session."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_receipt_generator] = lambda: receipt_generator
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture()
def register_tenant(client: AsyncClient):
    """Onboard an institution and log its super admin in. Returns {tenant_id, headers, email}."""

    async def _register(domain: str = "greenvalley.edu.pk", email: Optional[str] = None) -> dict:
        email = email or f"admin@{domain}"
        response = await client.post(
            "/api/v1/auth/register",
            json={
                "institution_name": f"{domain.split('.')[0].title()} School",
                "domain": domain,
                "admin_name": "Admin",
                "admin_email": email,
                "password": PASSWORD,
                "confirm_password": PASSWORD,
            },
        )
        assert response.status_code == 201, response.text
        tenant_id = response.json()["tenant_id"]
        login = await client.post("/api/v1/auth/login", json={"email": email, "password": PASSWORD})
        assert login.status_code == 200, login.text
        token = login.json()["access_token"]
        return {
            "tenant_id": UUID(tenant_id),
            "headers": {"Authorization": f"Bearer {token}"},
            "email": email,
        }

    return _register


@pytest.fixture()
async def tenant(register_tenant) -> dict:
    return await register_tenant()


@pytest.fixture()
def login_as(client: AsyncClient):
    """Create a staff user with the given role in the caller's tenant and return its auth headers."""

    async def _login_as(admin_headers: dict, role: str, email: str) -> dict:
        response = await client.post(
            "/api/v1/users",
            json={"name": role.title(), "email": email, "password": PASSWORD, "role": role},
            headers=admin_headers,
        )
        assert response.status_code == 201, response.text
        login = await client.post("/api/v1/auth/login", json={"email": email, "password": PASSWORD})
        assert login.status_code == 200, login.text
        return {"Authorization": f"Bearer {login.json()['access_token']}"}

    return _login_as


# --- direct seeding for engine/service tests ---
class Seeder:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def tenant(self, domain: str = "seed.edu.pk") -> Tenant:
        t = Tenant(name="Seed School", domain=domain, currency="PKR")
        self.db.add(t)
        await self.db.commit()
        return t

    async def student(
        self,
        tenant_id: UUID,
        name: str,
        roll_number: str,
        class_name: str = "10",
        status: StudentStatus = StudentStatus.active,
        email: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> Student:
        s = Student(
            tenant_id=tenant_id,
            name=name,
            roll_number=roll_number,
            class_name=class_name,
            status=status.value,
            email=email,
            phone=phone,
        )
        self.db.add(s)
        await self.db.commit()
        return s

    async def fee_structure(
        self,
        tenant_id: UUID,
        classes: List[str],
        installments: List[tuple],
        title: str = "Annual Fee",
    ) -> FeeStructure:
        """installments: (label, amount, due_date) tuples."""
        fs = FeeStructure(
            tenant_id=tenant_id,
            title=title,
            total_amount=sum((Decimal(str(amount)) for _, amount, _ in installments), Decimal("0")),
            academic_year="2025-2026",
            classes=[FeeStructureClass(class_name=c) for c in classes],
            installments=[
                Installment(
                    tenant_id=tenant_id,
                    position=i,
                    label=label,
                    amount=Decimal(str(amount)),
                    due_date=due_date,
                    status=InstallmentStatus.pending.value,
                )
                for i, (label, amount, due_date) in enumerate(installments)
            ],
        )
        self.db.add(fs)
        await self.db.commit()
        await self.db.refresh(fs)
        return fs

    async def payment(
        self,
        tenant_id: UUID,
        student: Student,
        fs: FeeStructure,
        installment: Installment,
        status: PaymentStatus = PaymentStatus.completed,
        amount=None,
    ) -> Payment:
        p = Payment(
            tenant_id=tenant_id,
            student_id=student.id,
            fee_structure_id=fs.id,
            installment_id=installment.id,
            amount=installment.amount if amount is None else Decimal(str(amount)),
            payment_date=datetime.now(timezone.utc),
            payment_method=PaymentMethod.cash.value,
            status=status.value,
        )
        self.db.add(p)
        await self.db.commit()
        return p


@pytest.fixture()
def seed(db_session: AsyncSession) -> Seeder:
    return Seeder(db_session)


@pytest.fixture()
def today() -> date:
    return date(2026, 3, 15)
