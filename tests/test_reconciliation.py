from datetime import date, timedelta
from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.reports.service import compute_defaulters
from app.core.enums import PaymentStatus, StudentStatus


@pytest.mark.asyncio
async def test_single_overdue_installment_reported(seed, db_session: AsyncSession, today: date) -> None:
    t = await seed.tenant()
    s = await seed.student(t.id, "Ali Raza", "R-1", class_name="10")
    fs = await seed.fee_structure(t.id, ["10"], [("Term 1", 5000, today - timedelta(days=45))])

    report = await compute_defaulters(db_session, t.id, 30, today=today)

    assert report.count == 1
    assert report.total_due == Decimal("5000")
    [record] = report.defaulters
    assert record.student_id == s.id
    assert record.name == "Ali Raza"
    assert record.roll_number == "R-1"
    assert record.class_name == "10"
    assert record.total_due == Decimal("5000")
    [overdue] = record.overdue_installments
    assert overdue.fee_structure_id == fs.id
    assert overdue.installment_id == fs.installments[0].id
    assert overdue.installment_label == "Term 1"
    assert overdue.fee_structure_title == "Annual Fee"
    assert overdue.days_overdue == 45
    assert overdue.due_date == today - timedelta(days=45)


@pytest.mark.asyncio
async def test_completed_payment_settles_installment(seed, db_session: AsyncSession, today: date) -> None:
    t = await seed.tenant()
    s = await seed.student(t.id, "Ali Raza", "R-1")
    fs = await seed.fee_structure(t.id, ["10"], [("Term 1", 5000, today - timedelta(days=45))])
    await seed.payment(t.id, s, fs, fs.installments[0])

    report = await compute_defaulters(db_session, t.id, 30, today=today)

    assert report.count == 0
    assert report.total_due == Decimal("0")
    assert report.defaulters == []


@pytest.mark.asyncio
async def test_completed_payment_settles_regardless_of_due_date(seed, db_session: AsyncSession, today: date) -> None:
    t = await seed.tenant()
    s = await seed.student(t.id, "Ali Raza", "R-1")
    fs = await seed.fee_structure(
        t.id,
        ["10"],
        [("Old", 1000, today - timedelta(days=400)), ("Recent", 2000, today - timedelta(days=60))],
    )
    for inst in fs.installments:
        await seed.payment(t.id, s, fs, inst, amount=1)

    report = await compute_defaulters(db_session, t.id, 0, today=today)
    assert report.defaulters == []


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [PaymentStatus.pending, PaymentStatus.failed, PaymentStatus.refunded])
async def test_non_completed_payment_does_not_settle(seed, db_session: AsyncSession, today: date, status) -> None:
    t = await seed.tenant()
    s = await seed.student(t.id, "Ali Raza", "R-1")
    fs = await seed.fee_structure(t.id, ["10"], [("Term 1", 5000, today - timedelta(days=45))])
    await seed.payment(t.id, s, fs, fs.installments[0], status=status)

    report = await compute_defaulters(db_session, t.id, 30, today=today)
    assert report.count == 1


@pytest.mark.asyncio
async def test_payment_by_another_student_does_not_settle(seed, db_session: AsyncSession, today: date) -> None:
    t = await seed.tenant()
    ali = await seed.student(t.id, "Ali Raza", "R-1")
    sana = await seed.student(t.id, "Sana Malik", "R-2")
    fs = await seed.fee_structure(t.id, ["10"], [("Term 1", 5000, today - timedelta(days=45))])
    await seed.payment(t.id, sana, fs, fs.installments[0])

    report = await compute_defaulters(db_session, t.id, 30, today=today)
    assert [d.student_id for d in report.defaulters] == [ali.id]


@pytest.mark.asyncio
async def test_threshold_is_strict(seed, db_session: AsyncSession, today: date) -> None:
    t = await seed.tenant()
    await seed.student(t.id, "Ali Raza", "R-1")
    await seed.fee_structure(
        t.id,
        ["10"],
        [("At threshold", 100, today - timedelta(days=30)), ("Past threshold", 200, today - timedelta(days=31))],
    )

    report = await compute_defaulters(db_session, t.id, 30, today=today)

    [record] = report.defaulters
    assert [o.installment_label for o in record.overdue_installments] == ["Past threshold"]
    assert record.overdue_installments[0].days_overdue == 31


@pytest.mark.asyncio
async def test_students_without_overdue_installments_are_omitted(seed, db_session: AsyncSession, today: date) -> None:
    t = await seed.tenant()
    await seed.student(t.id, "Ali Raza", "R-1", class_name="10")
    await seed.student(t.id, "No Fees", "R-2", class_name="12")
    await seed.student(t.id, "Future Only", "R-3", class_name="11")
    await seed.fee_structure(t.id, ["10"], [("Term 1", 5000, today - timedelta(days=45))])
    await seed.fee_structure(t.id, ["11"], [("Upcoming", 5000, today + timedelta(days=10))])

    report = await compute_defaulters(db_session, t.id, 30, today=today)

    assert [d.name for d in report.defaulters] == ["Ali Raza"]
    assert all(d.overdue_installments for d in report.defaulters)


@pytest.mark.asyncio
async def test_inactive_and_graduated_students_are_skipped(seed, db_session: AsyncSession, today: date) -> None:
    t = await seed.tenant()
    await seed.student(t.id, "Left School", "R-1", status=StudentStatus.inactive)
    await seed.student(t.id, "Graduate", "R-2", status=StudentStatus.graduated)
    await seed.fee_structure(t.id, ["10"], [("Term 1", 5000, today - timedelta(days=45))])

    report = await compute_defaulters(db_session, t.id, 30, today=today)
    assert report.count == 0


@pytest.mark.asyncio
async def test_class_filter_and_multiple_structures(seed, db_session: AsyncSession, today: date) -> None:
    t = await seed.tenant()
    await seed.student(t.id, "Ali Raza", "R-1", class_name="10")
    await seed.student(t.id, "Hina Shah", "R-2", class_name="9")
    await seed.fee_structure(t.id, ["9", "10"], [("Tuition", 3000, today - timedelta(days=40))], title="Tuition")
    await seed.fee_structure(t.id, ["10"], [("Lab", 700, today - timedelta(days=35))], title="Lab")

    report = await compute_defaulters(db_session, t.id, 30, today=today)
    by_name = {d.name: d for d in report.defaulters}
    assert by_name["Ali Raza"].total_due == Decimal("3700")
    assert {o.fee_structure_title for o in by_name["Ali Raza"].overdue_installments} == {"Tuition", "Lab"}
    assert by_name["Hina Shah"].total_due == Decimal("3000")
    assert report.total_due == Decimal("6700")

    filtered = await compute_defaulters(db_session, t.id, 30, class_name="9", today=today)
    assert [d.name for d in filtered.defaulters] == ["Hina Shah"]


@pytest.mark.asyncio
async def test_record_total_is_sum_of_overdue_amounts(seed, db_session: AsyncSession, today: date) -> None:
    t = await seed.tenant()
    await seed.student(t.id, "Ali Raza", "R-1")
    await seed.student(t.id, "Sana Malik", "R-2")
    await seed.fee_structure(
        t.id,
        ["10"],
        [
            ("Q1", "1250.50", today - timedelta(days=200)),
            ("Q2", "1250.25", today - timedelta(days=110)),
            ("Q3", 999, today - timedelta(days=20)),
            ("Q4", 1000, today + timedelta(days=70)),
        ],
    )

    report = await compute_defaulters(db_session, t.id, 15, today=today)

    for record in report.defaulters:
        assert record.total_due == sum(o.amount for o in record.overdue_installments)
        assert len(record.overdue_installments) == 3
    assert report.total_due == sum(d.total_due for d in report.defaulters)
    assert report.count == len(report.defaulters) == 2


@pytest.mark.asyncio
async def test_larger_threshold_never_adds_defaulters(seed, db_session: AsyncSession, today: date) -> None:
    t = await seed.tenant()
    for i, days in enumerate([5, 20, 31, 45, 90, 365]):
        s = await seed.student(t.id, f"Student {i}", f"R-{i}", class_name=f"C{i}")
        await seed.fee_structure(t.id, [s.class_name], [("Fee", 100 * (i + 1), today - timedelta(days=days))])

    previous = None
    for threshold in [0, 10, 30, 44, 45, 100, 400]:
        report = await compute_defaulters(db_session, t.id, threshold, today=today)
        ids = {d.student_id for d in report.defaulters}
        if previous is not None:
            assert ids <= previous
        previous = ids
    assert previous == set()


@pytest.mark.asyncio
async def test_sorted_by_total_due_with_stable_ties(seed, db_session: AsyncSession, today: date) -> None:
    t = await seed.tenant()
    await seed.student(t.id, "Bilal", "R-2", class_name="A")
    await seed.student(t.id, "Ahmed", "R-1", class_name="A")
    await seed.student(t.id, "Zara", "R-3", class_name="B")
    await seed.fee_structure(t.id, ["A"], [("Fee", 500, today - timedelta(days=60))])
    await seed.fee_structure(t.id, ["B"], [("Fee", 900, today - timedelta(days=60))])

    report = await compute_defaulters(db_session, t.id, 30, today=today)

    assert [d.name for d in report.defaulters] == ["Zara", "Ahmed", "Bilal"]


@pytest.mark.asyncio
async def test_tenants_are_isolated(seed, db_session: AsyncSession, today: date) -> None:
    a = await seed.tenant("alpha.edu.pk")
    b = await seed.tenant("beta.edu.pk")
    await seed.student(a.id, "Alpha Kid", "R-1")
    await seed.fee_structure(b.id, ["10"], [("Beta Fee", 5000, today - timedelta(days=45))])

    assert (await compute_defaulters(db_session, a.id, 30, today=today)).count == 0
    assert (await compute_defaulters(db_session, b.id, 30, today=today)).count == 0


@pytest.mark.asyncio
async def test_defaulters_endpoint_camel_case(tenant, client: AsyncClient) -> None:
    headers = tenant["headers"]
    due = (date.today() - timedelta(days=45)).isoformat()
    student = (
        await client.post(
            "/api/v1/students", json={"name": "Ali Raza", "roll_number": "R-1", "class_name": "10"}, headers=headers
        )
    ).json()
    fs = (
        await client.post(
            "/api/v1/fee-structures",
            json={
                "title": "Annual",
                "total_amount": "5000",
                "academic_year": "2025-2026",
                "applicable_classes": ["10"],
                "installments": [{"label": "Term 1", "amount": "5000", "due_date": due}],
            },
            headers=headers,
        )
    ).json()

    response = await client.get("/api/v1/reports/defaulters", params={"days_overdue": 30}, headers=headers)
    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 1
    assert data["totalDue"] == 5000
    [record] = data["defaulters"]
    assert record["studentId"] == student["id"]
    assert record["rollNumber"] == "R-1"
    assert record["className"] == "10"
    assert record["totalDue"] == 5000
    [overdue] = record["overdueInstallments"]
    assert overdue == {
        "feeStructureId": fs["id"],
        "feeStructureTitle": "Annual",
        "installmentId": fs["installments"][0]["id"],
        "installmentLabel": "Term 1",
        "amount": 5000,
        "dueDate": due,
        "daysOverdue": 45,
    }

    response = await client.get("/api/v1/reports/defaulters", params={"days_overdue": 60}, headers=headers)
    assert response.json() == {"count": 0, "totalDue": 0, "defaulters": []}
