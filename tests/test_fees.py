"""Fee schedule generation, regeneration on class change, catalog and payments."""

import re
from collections import Counter
from datetime import date
from decimal import Decimal

from sqlalchemy import select

from schoolops.api.v1.fees.service import effective_status, session_months, summarize_fee_status
from schoolops.core.enums import FeeStatusSummary, MonthlyFeeStatus
from schoolops.core.models import FeeAuditLog, MonthlyFee

from conftest import create_class, create_session, create_student


def test_session_months_cover_academic_year() -> None:
    months = session_months(date(2024, 4, 1), date(2025, 3, 31))
    assert len(months) == 12
    assert months[0] == ("APRIL", 2024)
    assert months[-1] == ("MARCH", 2025)


def test_effective_status_marks_past_due_pending_as_overdue() -> None:
    fee = MonthlyFee(status="PENDING", due_date=date(2024, 4, 10))
    assert effective_status(fee, today=date(2024, 4, 11)) == MonthlyFeeStatus.OVERDUE
    assert effective_status(fee, today=date(2024, 4, 10)) == MonthlyFeeStatus.PENDING
    paid = MonthlyFee(status="PAID", due_date=date(2024, 4, 10))
    assert effective_status(paid, today=date(2030, 1, 1)) == MonthlyFeeStatus.PAID


def test_fee_status_summary_precedence() -> None:
    assert summarize_fee_status(Decimal("100"), Decimal("50")) == FeeStatusSummary.overdue
    assert summarize_fee_status(Decimal("100"), Decimal("0")) == FeeStatusSummary.pending
    assert summarize_fee_status(Decimal("0"), Decimal("0")) == FeeStatusSummary.paid


async def test_class_fee_structure_sums_components(client, admin_headers, school) -> None:
    resp = await client.get(f"/fees/structure/class/{school.c5a['id']}", headers=admin_headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert Decimal(data["monthly_amount"]) == school.rate_5a
    assert sorted(i["component_name"] for i in data["items"]) == ["Transport", "Tuition"]


async def test_duplicate_fee_component_conflicts(client, admin_headers, school) -> None:
    resp = await client.post(
        "/fees/structure",
        json={"class_id": school.c5a["id"], "component_name": "Tuition", "amount": "10"},
        headers=admin_headers,
    )
    assert resp.status_code == 409


async def test_admission_generates_schedule(client, admin_headers, school) -> None:
    resp = await client.get("/fees/catalog/S1", headers=admin_headers)
    assert resp.status_code == 200
    catalog = resp.json()["data"]
    fees = catalog["monthly_fees"]
    assert len(fees) == 12
    assert {Decimal(f["amount"]) for f in fees} == {school.rate_5a}
    assert fees[0]["month"] == "APRIL"
    assert fees[0]["due_date"] == "2024-04-10"
    assert Decimal(catalog["total_amount"]) == school.rate_5a * 12


async def test_admission_without_fee_structure_creates_nothing(client, admin_headers, school) -> None:
    bare = await create_class(client, admin_headers, "10-C", school.s2024["id"])
    resp = await client.post(
        "/students",
        json={"pan_number": "S9", "name": "Nobody", "class_id": bare["id"]},
        headers=admin_headers,
    )
    assert resp.status_code == 400
    assert "10-C" in resp.json()["message"]
    assert (await client.get("/students/S9", headers=admin_headers)).status_code == 404


async def test_class_change_regenerates_single_schedule(client, admin_headers, school) -> None:
    pay = await client.post(
        "/fees/pay",
        json={"student_pan": "S1", "month": "april", "amount": "1500"},
        headers=admin_headers,
    )
    assert pay.status_code == 201, pay.text
    receipt = pay.json()["data"]["receipt_number"]

    resp = await client.put("/students/S1", json={"class_id": school.c6a["id"]}, headers=admin_headers)
    assert resp.status_code == 200, resp.text
    assert resp.json()["data"]["class_name"] == "6-A"

    fees = (await client.get("/fees/catalog/S1", headers=admin_headers)).json()["data"]["monthly_fees"]
    keys = Counter((f["month"], f["year"]) for f in fees)
    assert len(fees) == 12
    assert max(keys.values()) == 1
    assert {f["class_id"] for f in fees} == {school.c6a["id"]}

    april = next(f for f in fees if f["month"] == "APRIL")
    assert april["status"] == "PAID"
    assert april["receipt_number"] == receipt
    assert Decimal(april["amount"]) == school.rate_5a
    assert {Decimal(f["amount"]) for f in fees if f["month"] != "APRIL"} == {school.rate_6a}


async def test_class_change_keeps_amount_actually_paid(client, admin_headers, school) -> None:
    await client.post(
        "/fees/pay",
        json={"student_pan": "S3", "month": "APRIL", "amount": "1500"},
        headers=admin_headers,
    )
    await client.put("/students/S3", json={"class_id": school.c6a["id"]}, headers=admin_headers)

    catalog = (await client.get("/fees/catalog/S3", headers=admin_headers)).json()["data"]
    assert Decimal(catalog["total_paid"]) == school.rate_5a
    assert Decimal(catalog["total_amount"]) == school.rate_5a + school.rate_6a * 11


async def test_repeated_class_changes_keep_one_schedule(client, admin_headers, school) -> None:
    for class_id in (school.c6a["id"], school.c5a["id"], school.c6a["id"]):
        resp = await client.put("/students/S2", json={"class_id": class_id}, headers=admin_headers)
        assert resp.status_code == 200

    fees = (await client.get("/fees/catalog/S2", headers=admin_headers)).json()["data"]["monthly_fees"]
    assert len(fees) == 12
    assert {Decimal(f["amount"]) for f in fees} == {school.rate_6a}


async def test_regeneration_is_audited(client, admin_headers, school, session_factory) -> None:
    await client.put("/students/S1", json={"class_id": school.c6a["id"]}, headers=admin_headers)
    async with session_factory() as db:
        actions = Counter(
            (await db.execute(select(FeeAuditLog.action_type).where(FeeAuditLog.reference_table == "monthly_fees")))
            .scalars()
            .all()
        )
    # Three admissions plus the regeneration create 48 rows; the regeneration deletes 12.
    assert actions["CREATE"] == 48
    assert actions["DELETE"] == 12


async def test_generate_when_fees_exist_conflicts(client, admin_headers, school) -> None:
    resp = await client.post("/fees/generate/S1", headers=admin_headers)
    assert resp.status_code == 409
    body = resp.json()
    assert body["error_kind"] == "CONFLICT"
    assert body["message"] == "Fee records already exist for this student"


async def test_generate_for_student_without_class(client, admin_headers, school) -> None:
    await create_student(client, admin_headers, "S7", "Unplaced")
    resp = await client.post("/fees/generate/S7", headers=admin_headers)
    assert resp.status_code == 400


async def test_pay_with_empty_receipt_generates_one(client, admin_headers, school) -> None:
    resp = await client.post(
        "/fees/pay",
        json={"student_pan": "S2", "month": "MAY", "amount": "1500.00", "receipt_number": ""},
        headers=admin_headers,
    )
    assert resp.status_code == 201, resp.text
    body = resp.json()
    fee = body["data"]
    assert fee["status"] == "PAID"
    assert re.fullmatch(r"RCP-\d{8}-[0-9A-F]{6}", fee["receipt_number"])
    assert fee["payment_date"] == date.today().isoformat()
    assert body["message"] == "Fee payment for MAY processed successfully"

    catalog = (await client.get("/fees/catalog/S2", headers=admin_headers)).json()["data"]
    may = next(f for f in catalog["monthly_fees"] if f["month"] == "MAY")
    assert may["status"] == "PAID"
    assert Decimal(catalog["total_paid"]) == school.rate_5a


async def test_pay_keeps_given_receipt(client, admin_headers, school) -> None:
    resp = await client.post(
        "/fees/pay",
        json={"student_pan": "S2", "month": "JUNE", "amount": "1500", "receipt_number": "MANUAL-1"},
        headers=admin_headers,
    )
    assert resp.json()["data"]["receipt_number"] == "MANUAL-1"


async def test_pay_twice_conflicts(client, admin_headers, school) -> None:
    payload = {"student_pan": "S3", "month": "JULY", "amount": "1500"}
    assert (await client.post("/fees/pay", json=payload, headers=admin_headers)).status_code == 201
    resp = await client.post("/fees/pay", json=payload, headers=admin_headers)
    assert resp.status_code == 409


async def test_pay_wrong_amount_rejected(client, admin_headers, school) -> None:
    resp = await client.post(
        "/fees/pay", json={"student_pan": "S3", "month": "JULY", "amount": "999"}, headers=admin_headers
    )
    assert resp.status_code == 400


async def test_pay_invalid_month_rejected(client, admin_headers, school) -> None:
    resp = await client.post(
        "/fees/pay", json={"student_pan": "S3", "month": "SMARCH", "amount": "1500"}, headers=admin_headers
    )
    assert resp.status_code == 422


async def test_pay_for_student_without_class(client, admin_headers, school) -> None:
    await create_student(client, admin_headers, "S8", "Unplaced")
    resp = await client.post(
        "/fees/pay", json={"student_pan": "S8", "month": "APRIL", "amount": "1500"}, headers=admin_headers
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == (
        "Cannot process payment: Student is not assigned to any class. "
        "Please assign the student to a class first."
    )


async def test_catalog_reports_overdue_and_pending(client, admin_headers) -> None:
    past = await create_session(client, admin_headers, "2020-2021", "2020-04-01", "2021-03-31")
    future = await create_session(client, admin_headers, "2090-2091", "2090-04-01", "2091-03-31")
    old = await create_class(client, admin_headers, "1-A", past["id"], monthly={"Tuition": 100})
    new = await create_class(client, admin_headers, "1-A", future["id"], monthly={"Tuition": 100})
    await create_student(client, admin_headers, "P1", "Past", class_id=old["id"])
    await create_student(client, admin_headers, "F1", "Future", class_id=new["id"])

    past_catalog = (await client.get("/fees/catalog/P1", headers=admin_headers)).json()["data"]
    assert {f["status"] for f in past_catalog["monthly_fees"]} == {"OVERDUE"}
    assert Decimal(past_catalog["total_overdue"]) == Decimal("1200")
    assert Decimal(past_catalog["total_pending"]) == 0
    assert past_catalog["fee_status"] == "overdue"

    future_catalog = (await client.get("/fees/catalog/F1", headers=admin_headers)).json()["data"]
    assert {f["status"] for f in future_catalog["monthly_fees"]} == {"PENDING"}
    assert future_catalog["fee_status"] == "pending"

    student = (await client.get("/students/P1", headers=admin_headers)).json()["data"]
    assert student["fee_status"] == "overdue"
