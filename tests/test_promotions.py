"""API tests for promotion assignment and execution."""

from decimal import Decimal
from uuid import uuid4

from sqlalchemy.dialects import postgresql

from schoolops.api.v1.promotions.service import pending_records_stmt

from conftest import create_class, make_headers


async def _assign(client, headers, school, assignments, class_id=None, session_id=None):
    return await client.post(
        "/promotions/assign",
        json={
            "class_id": class_id or school.c5a["id"],
            "session_id": session_id or school.s2024["id"],
            "assignments": assignments,
        },
        headers=headers,
    )


async def _execute(client, headers, from_id, to_id):
    return await client.post(
        "/promotions/execute",
        params={"fromSessionId": from_id, "toSessionId": to_id},
        headers=headers,
    )


def _standard_assignments(school):
    return [
        {"student_pan": "S1", "to_class_id": school.c6a["id"]},
        {"student_pan": "S2", "is_graduated": True, "remarks": "Leaving"},
        {"student_pan": "S3", "is_detained": True},
    ]


async def test_assign_creates_pending_records(client, admin_headers, school) -> None:
    resp = await _assign(client, admin_headers, school, _standard_assignments(school))
    assert resp.status_code == 200, resp.text
    records = {r["student_pan"]: r for r in resp.json()["data"]}
    assert records["S1"]["to_class_name"] == "6-A"
    assert records["S1"]["status"] == "PENDING"
    assert records["S2"]["is_graduated"] is True
    assert records["S2"]["to_class_name"] is None
    assert records["S3"]["to_class_name"] is None
    assert records["S3"]["is_graduated"] is False

    # Assignment alone does not move anyone.
    student = (await client.get("/students/S1", headers=admin_headers)).json()["data"]
    assert student["class_id"] == school.c5a["id"]


async def test_graduated_with_target_class_rejected(client, admin_headers, school) -> None:
    resp = await _assign(
        client, admin_headers, school,
        [{"student_pan": "S1", "to_class_id": school.c6a["id"], "is_graduated": True}],
    )
    assert resp.status_code == 422
    body = resp.json()
    assert body["data"] is None
    assert body["error_kind"] == "VALIDATION"


async def test_assignment_requires_one_outcome(client, admin_headers, school) -> None:
    resp = await _assign(client, admin_headers, school, [{"student_pan": "S1"}])
    assert resp.status_code == 422


async def test_reassign_pending_overwrites_record(client, admin_headers, school) -> None:
    await _assign(client, admin_headers, school, [{"student_pan": "S1", "to_class_id": school.c6a["id"]}])
    resp = await _assign(client, admin_headers, school, [{"student_pan": "S1", "is_detained": True}])
    assert resp.status_code == 200

    records = (await client.get(f"/promotions/session/{school.s2024['id']}", headers=admin_headers)).json()["data"]
    assert len(records) == 1
    assert records[0]["to_class_name"] is None
    assert records[0]["is_graduated"] is False


async def test_teacher_gating(client, admin_headers, school) -> None:
    resp = await _assign(client, school.teacher_headers, school, [{"student_pan": "S1", "is_detained": True}])
    assert resp.status_code == 200

    other = (
        await client.post("/teachers", json={"name": "Other", "email": "other@example.com"}, headers=admin_headers)
    ).json()["data"]
    resp = await _assign(
        client, make_headers("TEACHER", teacher_id=other["id"]), school,
        [{"student_pan": "S1", "is_detained": True}],
    )
    assert resp.status_code == 403
    assert resp.json()["error_kind"] == "FORBIDDEN"


async def test_student_outside_class_rejected(client, admin_headers, school) -> None:
    resp = await _assign(
        client, admin_headers, school,
        [{"student_pan": "S1", "is_detained": True}],
        class_id=school.c6a["id"],
    )
    assert resp.status_code == 400


async def test_summary_counts_pending(client, admin_headers, school) -> None:
    await _assign(client, admin_headers, school, _standard_assignments(school))
    summary = (
        await client.get(f"/promotions/session/{school.s2024['id']}/summary", headers=admin_headers)
    ).json()["data"]
    assert (summary["promoted"], summary["graduated"], summary["detained"], summary["total"]) == (1, 1, 1, 3)
    assert summary["by_status"] == {"PENDING": 3}


async def test_execute_same_session_rejected(client, admin_headers, school) -> None:
    resp = await _execute(client, admin_headers, school.s2024["id"], school.s2024["id"])
    assert resp.status_code == 400
    assert resp.json()["error_kind"] == "VALIDATION"


async def test_execute_missing_session_id_rejected(client, admin_headers, school) -> None:
    resp = await client.post(
        "/promotions/execute", params={"fromSessionId": school.s2024["id"]}, headers=admin_headers
    )
    assert resp.status_code == 400


async def test_execute_requires_admin(client, school) -> None:
    resp = await _execute(client, school.teacher_headers, school.s2024["id"], school.s2025["id"])
    assert resp.status_code == 403


async def test_execute_without_pending_rejected(client, admin_headers, school) -> None:
    resp = await _execute(client, admin_headers, school.s2024["id"], school.s2025["id"])
    assert resp.status_code == 400
    assert resp.json()["message"] == "No pending promotions"


async def test_execute_applies_every_outcome(client, admin_headers, school) -> None:
    await _assign(client, admin_headers, school, _standard_assignments(school))

    resp = await _execute(client, admin_headers, school.s2024["id"], school.s2025["id"])
    assert resp.status_code == 200, resp.text
    result = resp.json()["data"]
    assert result["processed"] == 3
    assert (result["promoted"], result["graduated"], result["detained"]) == (1, 1, 1)
    assert result["promoted"] + result["graduated"] + result["detained"] == result["processed"]

    # Promoted: 5-A (2024-2025) -> 6-A (2025-2026), fees at the 6-A rate of the new session.
    s1 = (await client.get("/students/S1", headers=admin_headers)).json()["data"]
    assert s1["class_id"] == school.n6a["id"]
    assert s1["session_id"] == school.s2025["id"]
    catalog = (await client.get("/fees/catalog/S1", headers=admin_headers)).json()["data"]
    assert len(catalog["monthly_fees"]) == 12
    assert {Decimal(f["amount"]) for f in catalog["monthly_fees"]} == {school.rate_n6a}
    assert {f["class_id"] for f in catalog["monthly_fees"]} == {school.n6a["id"]}

    # Graduated: no class, no fees for the new session.
    s2 = (await client.get("/students/S2", headers=admin_headers)).json()["data"]
    assert s2["status"] == "GRADUATED"
    assert s2["class_id"] is None
    assert s2["session_id"] == school.s2024["id"]
    catalog = (await client.get("/fees/catalog/S2", headers=admin_headers)).json()["data"]
    assert {f["class_id"] for f in catalog["monthly_fees"]} == {school.c5a["id"]}

    # Detained: repeats 5-A in the new session.
    s3 = (await client.get("/students/S3", headers=admin_headers)).json()["data"]
    assert s3["class_id"] == school.n5a["id"]
    catalog = (await client.get("/fees/catalog/S3", headers=admin_headers)).json()["data"]
    assert {Decimal(f["amount"]) for f in catalog["monthly_fees"]} == {school.rate_n5a}

    records = {
        r["student_pan"]: r
        for r in (await client.get(f"/promotions/session/{school.s2024['id']}", headers=admin_headers)).json()["data"]
    }
    assert records["S1"]["status"] == "PROMOTED"
    assert records["S2"]["status"] == "GRADUATED"
    assert records["S2"]["to_class_name"] is None
    assert records["S3"]["status"] == "DETAINED"
    assert all(r["to_session_id"] == school.s2025["id"] for r in records.values())
    assert all(r["executed_at"] for r in records.values())

    summary = (
        await client.get(f"/promotions/session/{school.s2024['id']}/summary", headers=admin_headers)
    ).json()["data"]
    assert summary["total"] == 0


async def test_execute_twice_changes_nothing(client, admin_headers, school) -> None:
    await _assign(client, admin_headers, school, _standard_assignments(school))
    first = await _execute(client, admin_headers, school.s2024["id"], school.s2025["id"])
    assert first.status_code == 200

    second = await _execute(client, admin_headers, school.s2024["id"], school.s2025["id"])
    assert second.status_code == 400
    assert second.json()["message"] == "No pending promotions"
    s1 = (await client.get("/students/S1", headers=admin_headers)).json()["data"]
    assert s1["class_id"] == school.n6a["id"]


async def test_reassign_after_execution_conflicts(client, admin_headers, school) -> None:
    await _assign(client, admin_headers, school, [{"student_pan": "S3", "is_detained": True}])
    await _execute(client, admin_headers, school.s2024["id"], school.s2025["id"])

    resp = await _assign(client, admin_headers, school, [{"student_pan": "S3", "to_class_id": school.c6a["id"]}])
    assert resp.status_code == 409
    assert resp.json()["error_kind"] == "CONFLICT"


async def test_missing_target_class_rolls_back(client, admin_headers, school) -> None:
    c7a = await create_class(client, admin_headers, "7-A", school.s2024["id"], monthly={"Tuition": 2500})
    await _assign(
        client, admin_headers, school,
        [
            {"student_pan": "S1", "to_class_id": c7a["id"]},
            {"student_pan": "S2", "is_graduated": True},
        ],
    )

    resp = await _execute(client, admin_headers, school.s2024["id"], school.s2025["id"])
    assert resp.status_code == 400
    assert "7-A" in resp.json()["message"]

    s2 = (await client.get("/students/S2", headers=admin_headers)).json()["data"]
    assert s2["status"] == "ACTIVE"
    assert s2["class_id"] == school.c5a["id"]
    summary = (
        await client.get(f"/promotions/session/{school.s2024['id']}/summary", headers=admin_headers)
    ).json()["data"]
    assert summary["total"] == 2


async def test_fee_failure_rolls_back_whole_pass(client, admin_headers, school) -> None:
    # 8-A exists in both sessions but the new one has no fee structure.
    c8a = await create_class(client, admin_headers, "8-A", school.s2024["id"], monthly={"Tuition": 3000})
    await create_class(client, admin_headers, "8-A", school.s2025["id"])
    await _assign(
        client, admin_headers, school,
        [
            {"student_pan": "S2", "is_graduated": True},
            {"student_pan": "S1", "to_class_id": c8a["id"]},
        ],
    )

    resp = await _execute(client, admin_headers, school.s2024["id"], school.s2025["id"])
    assert resp.status_code == 400
    assert resp.json()["message"].startswith("Promotion execution failed")

    s2 = (await client.get("/students/S2", headers=admin_headers)).json()["data"]
    assert s2["status"] == "ACTIVE"
    s1 = (await client.get("/students/S1", headers=admin_headers)).json()["data"]
    assert s1["class_id"] == school.c5a["id"]


async def test_detained_without_matching_class_stays(client, admin_headers, school) -> None:
    c9b = await create_class(client, admin_headers, "9-B", school.s2024["id"], monthly={"Tuition": 900})
    await client.put("/students/S3", json={"class_id": c9b["id"]}, headers=admin_headers)
    await _assign(client, admin_headers, school, [{"student_pan": "S3", "is_detained": True}], class_id=c9b["id"])

    resp = await _execute(client, admin_headers, school.s2024["id"], school.s2025["id"])
    assert resp.status_code == 200
    assert resp.json()["data"]["detained"] == 1

    s3 = (await client.get("/students/S3", headers=admin_headers)).json()["data"]
    assert s3["class_id"] == c9b["id"]
    assert s3["session_id"] == school.s2024["id"]


def test_pending_records_are_locked_for_execution() -> None:
    stmt = pending_records_stmt(uuid4())
    sql = str(stmt.compile(dialect=postgresql.dialect()))
    assert "FOR UPDATE OF promotion_records" in sql
