import os
from decimal import Decimal
from types import SimpleNamespace
from typing import AsyncGenerator
from uuid import uuid4

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from schoolops.auth.security import create_access_token
from schoolops.db.session import Base, get_db
from schoolops.main import app
import schoolops.core.models  # noqa: F401


TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture()
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh in-memory SQLite DB per test. StaticPool keeps every session on the same connection."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield factory
    app.dependency_overrides.clear()
    await engine.dispose()


@pytest.fixture()
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def make_headers(role: str = "ADMIN", teacher_id=None) -> dict:
    claims = {"sub": str(uuid4()), "role": role}
    if teacher_id is not None:
        claims["teacher_id"] = str(teacher_id)
    return {"Authorization": f"Bearer {create_access_token(subject=claims)}"}


@pytest.fixture()
def admin_headers() -> dict:
    return make_headers("ADMIN")


async def create_session(client, headers, name, start, end, active=False) -> dict:
    resp = await client.post(
        "/sessions",
        json={"name": name, "start_date": start, "end_date": end, "active": active},
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


async def create_class(client, headers, name, session_id, monthly=None, teacher_id=None) -> dict:
    resp = await client.post(
        "/classes",
        json={"name": name, "session_id": session_id, "class_teacher_id": teacher_id},
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    cls = resp.json()["data"]
    for component, amount in (monthly or {}).items():
        resp = await client.post(
            "/fees/structure",
            json={"class_id": cls["id"], "component_name": component, "amount": str(amount)},
            headers=headers,
        )
        assert resp.status_code == 201, resp.text
    return cls


async def create_student(client, headers, pan, name, class_id=None, roll_number=None) -> dict:
    resp = await client.post(
        "/students",
        json={"pan_number": pan, "name": name, "class_id": class_id, "roll_number": roll_number},
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


@pytest.fixture()
async def school(client, admin_headers) -> SimpleNamespace:
    """
    Two consecutive sessions. 2024-2025 has classes 5-A (1500/month) and 6-A (2000/month)
    with students S1, S2, S3 in 5-A. 2025-2026 has 5-A (1600/month) and 6-A (2100/month).
    """
    teacher = (
        await client.post(
            "/teachers", json={"name": "Asha Verma", "email": "asha@example.com"}, headers=admin_headers
        )
    ).json()["data"]
    s2024 = await create_session(client, admin_headers, "2024-2025", "2024-04-01", "2025-03-31", active=True)
    s2025 = await create_session(client, admin_headers, "2025-2026", "2025-04-01", "2026-03-31")
    c5a = await create_class(
        client, admin_headers, "5-A", s2024["id"],
        monthly={"Tuition": 1000, "Transport": 500}, teacher_id=teacher["id"],
    )
    c6a = await create_class(client, admin_headers, "6-A", s2024["id"], monthly={"Tuition": 2000})
    n5a = await create_class(client, admin_headers, "5-A", s2025["id"], monthly={"Tuition": 1600})
    n6a = await create_class(client, admin_headers, "6-A", s2025["id"], monthly={"Tuition": 2100})
    students = [
        await create_student(client, admin_headers, pan, name, class_id=c5a["id"], roll_number=i + 1)
        for i, (pan, name) in enumerate([("S1", "Ravi"), ("S2", "Meena"), ("S3", "Kiran")])
    ]
    return SimpleNamespace(
        teacher=teacher,
        teacher_headers=make_headers("TEACHER", teacher_id=teacher["id"]),
        s2024=s2024,
        s2025=s2025,
        c5a=c5a,
        c6a=c6a,
        n5a=n5a,
        n6a=n6a,
        students=students,
        rate_5a=Decimal("1500"),
        rate_6a=Decimal("2000"),
        rate_n5a=Decimal("1600"),
        rate_n6a=Decimal("2100"),
    )
