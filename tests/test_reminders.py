from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import PaymentStatus, StudentStatus
from app.services import reminder_job
from app.services.reminder_job import ReminderJob, find_due_reminders, reminder_windows


class FlakyDispatcher:
    """Raises for one student, records the rest."""

    def __init__(self, failing_name: str):
        self.failing_name = failing_name
        self.sent = []

    async def send_reminder(self, contact, student_name, amount, due_date, currency="PKR") -> bool:
        if student_name == self.failing_name:
            raise RuntimeError("SMTP connection reset")
        self.sent.append((student_name, due_date))
        return True


def test_reminder_windows() -> None:
    assert reminder_windows(7) == {7, 0}
    assert reminder_windows(3) == {3, 0}


@pytest.mark.asyncio
async def test_only_due_in_window_or_today(seed, db_session: AsyncSession, today: date) -> None:
    t = await seed.tenant()
    s = await seed.student(t.id, "Ali Raza", "R-1", email="ali@student.pk")
    await seed.fee_structure(
        t.id,
        ["10"],
        [
            ("In 7 days", 100, today + timedelta(days=7)),
            ("In 6 days", 100, today + timedelta(days=6)),
            ("Tomorrow", 100, today + timedelta(days=1)),
            ("Today", 200, today),
            ("Yesterday", 100, today - timedelta(days=1)),
        ],
    )

    due = await find_due_reminders(db_session, t.id, today, days_before=7)

    assert sorted((r.days_until_due, r.amount) for r in due) == [(0, Decimal("200")), (7, Decimal("100"))]
    assert all(r.student_id == s.id for r in due)
    assert all(r.contact.email == "ali@student.pk" for r in due)


@pytest.mark.asyncio
async def test_paid_and_inactive_are_skipped(seed, db_session: AsyncSession, today: date) -> None:
    t = await seed.tenant()
    paid = await seed.student(t.id, "Paid Up", "R-1")
    await seed.student(t.id, "Owes", "R-2")
    await seed.student(t.id, "Left", "R-3", status=StudentStatus.inactive)
    fs = await seed.fee_structure(t.id, ["10"], [("Term 2", 5000, today + timedelta(days=7))])
    await seed.payment(t.id, paid, fs, fs.installments[0])

    due = await find_due_reminders(db_session, t.id, today)

    assert [r.student_name for r in due] == ["Owes"]


@pytest.mark.asyncio
async def test_refunded_payment_still_gets_reminder(seed, db_session: AsyncSession, today: date) -> None:
    t = await seed.tenant()
    s = await seed.student(t.id, "Ali Raza", "R-1")
    fs = await seed.fee_structure(t.id, ["10"], [("Term 2", 5000, today)])
    await seed.payment(t.id, s, fs, fs.installments[0], status=PaymentStatus.refunded)

    due = await find_due_reminders(db_session, t.id, today)
    assert len(due) == 1


@pytest.mark.asyncio
async def test_run_sends_across_tenants(seed, session_factory, dispatcher, today: date) -> None:
    a = await seed.tenant("alpha.edu.pk")
    b = await seed.tenant("beta.edu.pk")
    await seed.student(a.id, "Alpha Kid", "R-1", phone="+923001234567")
    await seed.student(b.id, "Beta Kid", "R-1", class_name="9")
    await seed.fee_structure(a.id, ["10"], [("Term", 1000, today + timedelta(days=7))])
    await seed.fee_structure(b.id, ["9"], [("Term", 2000, today)])

    result = await ReminderJob(session_factory, dispatcher, days_before=7).run(today)

    assert result.reminders_sent == 2
    assert result.failures == 0
    assert result.students_checked == 2
    assert sorted(r["student_name"] for r in dispatcher.reminders) == ["Alpha Kid", "Beta Kid"]
    alpha = next(r for r in dispatcher.reminders if r["student_name"] == "Alpha Kid")
    assert alpha["due_date"] == today + timedelta(days=7)
    assert alpha["contact"].phone == "+923001234567"


@pytest.mark.asyncio
async def test_run_twice_sends_twice(seed, session_factory, dispatcher, today: date) -> None:
    t = await seed.tenant()
    await seed.student(t.id, "Ali Raza", "R-1")
    await seed.fee_structure(t.id, ["10"], [("Term", 1000, today)])

    job = ReminderJob(session_factory, dispatcher, days_before=7)
    await job.run(today)
    await job.run(today)

    assert len(dispatcher.reminders) == 2


@pytest.mark.asyncio
async def test_failure_for_one_student_does_not_stop_run(seed, session_factory, today: date) -> None:
    t = await seed.tenant()
    await seed.student(t.id, "Ahmed", "R-1")
    await seed.student(t.id, "Bilal", "R-2")
    await seed.student(t.id, "Zara", "R-3")
    await seed.fee_structure(t.id, ["10"], [("Term", 1000, today + timedelta(days=7))])
    dispatcher = FlakyDispatcher("Bilal")

    result = await ReminderJob(session_factory, dispatcher, days_before=7).run(today)

    assert [name for name, _ in dispatcher.sent] == ["Ahmed", "Zara"]
    assert result.reminders_sent == 2
    assert result.failures == 1
    assert result.students_checked == 3
    assert "SMTP connection reset" in result.errors[0]


@pytest.mark.asyncio
async def test_failed_tenant_load_does_not_stop_later_tenants(
    seed, session_factory, dispatcher, today: date, monkeypatch
) -> None:
    broken = await seed.tenant("alpha.edu.pk")
    healthy = await seed.tenant("beta.edu.pk")
    await seed.student(broken.id, "Alpha Kid", "R-1")
    await seed.student(healthy.id, "Beta Kid", "R-1")
    await seed.fee_structure(broken.id, ["10"], [("Term", 1000, today)])
    await seed.fee_structure(healthy.id, ["10"], [("Term", 2000, today)])

    sessions = []
    original_load = reminder_job._load_tenant

    async def load_tenant(db, tenant_id):
        sessions.append(db)
        if tenant_id == broken.id:
            await db.execute(text("SELECT * FROM no_such_table"))
        return await original_load(db, tenant_id)

    monkeypatch.setattr(reminder_job, "_load_tenant", load_tenant)

    result = await ReminderJob(session_factory, dispatcher, days_before=7).run(today)

    assert [r["student_name"] for r in dispatcher.reminders] == ["Beta Kid"]
    assert result.reminders_sent == 1
    assert result.failures == 1
    assert str(broken.id) in result.errors[0]
    assert len(sessions) == 2
    assert sessions[0] is not sessions[1]


@pytest.mark.asyncio
async def test_undelivered_reminders_are_counted(seed, session_factory, dispatcher, today: date) -> None:
    t = await seed.tenant()
    await seed.student(t.id, "No Contact", "R-1")
    await seed.fee_structure(t.id, ["10"], [("Term", 1000, today)])
    dispatcher.result = False

    result = await ReminderJob(session_factory, dispatcher, days_before=7).run(today)

    assert result.reminders_sent == 0
    assert result.undelivered == 1
    assert result.failures == 0
