from typing import List

from fastapi import status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolops.core.exceptions import ServiceError
from schoolops.core.models import Teacher

from .schemas import TeacherCreate, TeacherResponse


async def create_teacher(db: AsyncSession, payload: TeacherCreate) -> TeacherResponse:
    obj = Teacher(name=payload.name.strip(), email=str(payload.email).lower())
    db.add(obj)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError("A teacher with this email already exists", status.HTTP_409_CONFLICT)
    await db.refresh(obj)
    return TeacherResponse.model_validate(obj)


async def list_teachers(db: AsyncSession) -> List[TeacherResponse]:
    result = await db.execute(select(Teacher).order_by(Teacher.name))
    return [TeacherResponse.model_validate(t) for t in result.scalars().all()]
