"""Exam types, class exam assignment and marks."""

from decimal import Decimal

import pytest

from schoolops.api.v1.exams.service import calculate_grade, calculate_percentage


@pytest.mark.parametrize(
    "percentage,grade",
    [(95, "A+"), (90, "A+"), (85, "A"), (72, "B+"), (60, "B"), (55, "C"), (40, "D"), (39.99, "F"), (0, "F")],
)
def test_calculate_grade(percentage, grade) -> None:
    assert calculate_grade(Decimal(str(percentage))) == grade


def test_calculate_percentage_rounds_to_two_places() -> None:
    assert calculate_percentage(Decimal("33"), 75) == Decimal("44.00")
    assert calculate_percentage(Decimal("1"), 3) == Decimal("33.33")


async def _exam_type(client, headers, name="Half Yearly") -> dict:
    resp = await client.post("/exam-types", json={"name": name}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


async def _assign(client, headers, exam_type_id, class_ids, max_marks=100, passing_marks=40):
    return await client.put(
        f"/class-exams/exam-type/{exam_type_id}",
        json={"class_ids": class_ids, "max_marks": max_marks, "passing_marks": passing_marks, "exam_date": "2024-10-15"},
        headers=headers,
    )


async def test_duplicate_exam_type_conflicts(client, admin_headers, school) -> None:
    await _exam_type(client, admin_headers)
    resp = await client.post("/exam-types", json={"name": "Half Yearly"}, headers=admin_headers)
    assert resp.status_code == 409
    listed = (await client.get("/exam-types", headers=admin_headers)).json()["data"]
    assert [e["name"] for e in listed] == ["Half Yearly"]


async def test_assignment_replaces_class_set(client, admin_headers, school) -> None:
    et = await _exam_type(client, admin_headers)
    resp = await _assign(client, admin_headers, et["id"], [school.c5a["id"], school.c6a["id"]])
    assert resp.status_code == 200, resp.text
    assert sorted(ce["class_name"] for ce in resp.json()["data"]) == ["5-A", "6-A"]
    kept_id = next(ce["id"] for ce in resp.json()["data"] if ce["class_name"] == "5-A")

    resp = await _assign(client, admin_headers, et["id"], [school.c5a["id"]], max_marks=50, passing_marks=20)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert len(data) == 1
    assert data[0]["id"] == kept_id
    assert data[0]["max_marks"] == 50
    assert data[0]["exam_type_name"] == "Half Yearly"

    for_6a = (await client.get(f"/class-exams/class/{school.c6a['id']}", headers=admin_headers)).json()["data"]
    assert for_6a == []


async def test_passing_marks_must_be_below_max(client, admin_headers, school) -> None:
    et = await _exam_type(client, admin_headers)
    resp = await _assign(client, admin_headers, et["id"], [school.c5a["id"]], max_marks=50, passing_marks=50)
    assert resp.status_code == 422
    resp = await _assign(client, admin_headers, et["id"], [school.c5a["id"]], max_marks=0, passing_marks=0)
    assert resp.status_code == 422


async def test_marks_upload_and_grades(client, admin_headers, school) -> None:
    et = await _exam_type(client, admin_headers)
    ce = (await _assign(client, admin_headers, et["id"], [school.c5a["id"]], max_marks=80, passing_marks=32)).json()[
        "data"
    ][0]

    resp = await client.post(
        "/marks",
        json={
            "class_exam_id": ce["id"],
            "subject": "Mathematics",
            "marks": [
                {"student_pan": "S1", "marks": "76"},
                {"student_pan": "S2", "marks": "30"},
            ],
        },
        headers=school.teacher_headers,
    )
    assert resp.status_code == 200, resp.text
    scores = {s["student_pan"]: s for s in resp.json()["data"]}
    assert Decimal(scores["S1"]["percentage"]) == Decimal("95.00")
    assert scores["S1"]["grade"] == "A+"
    assert scores["S1"]["passed"] is True
    assert scores["S2"]["grade"] == "F"
    assert scores["S2"]["passed"] is False

    # Re-upload updates in place.
    await client.post(
        "/marks",
        json={"class_exam_id": ce["id"], "subject": "Mathematics", "marks": [{"student_pan": "S2", "marks": "48"}]},
        headers=admin_headers,
    )
    listed = (
        await client.get(f"/marks/class-exam/{ce['id']}", params={"subject": "Mathematics"}, headers=admin_headers)
    ).json()["data"]
    assert len(listed) == 2
    s2 = next(s for s in listed if s["student_pan"] == "S2")
    assert Decimal(s2["marks"]) == Decimal("48")
    assert s2["grade"] == "B"


@pytest.mark.parametrize("marks", ["-1", "101"])
async def test_marks_out_of_range_rejected(client, admin_headers, school, marks) -> None:
    et = await _exam_type(client, admin_headers)
    ce = (await _assign(client, admin_headers, et["id"], [school.c5a["id"]])).json()["data"][0]
    resp = await client.post(
        "/marks",
        json={"class_exam_id": ce["id"], "subject": "Science", "marks": [{"student_pan": "S1", "marks": marks}]},
        headers=admin_headers,
    )
    assert resp.status_code == 400
    listed = (await client.get(f"/marks/class-exam/{ce['id']}", headers=admin_headers)).json()["data"]
    assert listed == []


async def test_marks_for_student_outside_class_rejected(client, admin_headers, school) -> None:
    et = await _exam_type(client, admin_headers)
    ce = (await _assign(client, admin_headers, et["id"], [school.c6a["id"]])).json()["data"][0]
    resp = await client.post(
        "/marks",
        json={"class_exam_id": ce["id"], "subject": "Science", "marks": [{"student_pan": "S1", "marks": "10"}]},
        headers=admin_headers,
    )
    assert resp.status_code == 400
