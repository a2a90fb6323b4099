"""Token verification and role checks."""

from uuid import uuid4

from conftest import make_headers


async def test_missing_token_rejected(client, school) -> None:
    resp = await client.get("/sessions")
    assert resp.status_code == 401
    assert resp.json()["error_kind"] == "FORBIDDEN"


async def test_invalid_token_rejected(client, school) -> None:
    resp = await client.get("/sessions", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401


async def test_teacher_token_for_unknown_teacher_rejected(client, school) -> None:
    resp = await client.get("/sessions", headers=make_headers("TEACHER", teacher_id=uuid4()))
    assert resp.status_code == 401


async def test_teacher_can_read(client, school) -> None:
    resp = await client.get("/students", headers=school.teacher_headers)
    assert resp.status_code == 200


async def test_teacher_cannot_write_admin_routes(client, school) -> None:
    resp = await client.post(
        "/sessions",
        json={"name": "X", "start_date": "2030-04-01", "end_date": "2031-03-31"},
        headers=school.teacher_headers,
    )
    assert resp.status_code == 403
    assert resp.json()["error_kind"] == "FORBIDDEN"

    resp = await client.post(
        "/fees/pay", json={"student_pan": "S1", "month": "APRIL", "amount": "1500"}, headers=school.teacher_headers
    )
    assert resp.status_code == 403
