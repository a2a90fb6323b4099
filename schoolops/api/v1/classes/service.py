from typing import List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolops.core.exceptions import ServiceError
from schoolops.core.models import AcademicSession, SchoolClass, Student, Teacher

from .schemas import ClassCreate, ClassResponse, ClassUpdate


def _class_to_response(c: SchoolClass, session_name: Optional[str] = None) -> ClassResponse:
    return ClassResponse(
        id=c.id,
        name=c.name,
        session_id=c.session_id,
        session_name=session_name,
        class_teacher_id=c.class_teacher_id,
        created_at=c.created_at,
        updated_at=c.updated_at,
    )


async def _validate_teacher(db: AsyncSession, teacher_id: Optional[UUID]) -> None:
    if teacher_id is not None and not await db.get(Teacher, teacher_id):
        raise ServiceError("Invalid class teacher", status.HTTP_400_BAD_REQUEST)


async def get_class_by_id(db: AsyncSession, class_id: UUID) -> Optional[SchoolClass]:
    return await db.get(SchoolClass, class_id)


async def get_class_by_name(db: AsyncSession, session_id: UUID, name: str) -> Optional[SchoolClass]:
    result = await db.execute(
        select(SchoolClass).where(SchoolClass.session_id == session_id, SchoolClass.name == name)
    )
    return result.scalar_one_or_none()


async def create_class(db: AsyncSession, payload: ClassCreate) -> ClassResponse:
    session = await db.get(AcademicSession, payload.session_id)
    if not session:
        raise ServiceError("Invalid session", status.HTTP_400_BAD_REQUEST)
    await _validate_teacher(db, payload.class_teacher_id)
    try:
        obj = SchoolClass(
            name=payload.name.strip(),
            session_id=payload.session_id,
            class_teacher_id=payload.class_teacher_id,
        )
        db.add(obj)
        await db.commit()
        await db.refresh(obj)
        return _class_to_response(obj, session.name)
    except IntegrityError:
        await db.rollback()
        raise ServiceError("Class name already exists for this session", status.HTTP_409_CONFLICT)


async def list_classes(db: AsyncSession, session_id: Optional[UUID] = None) -> List[ClassResponse]:
    stmt = select(SchoolClass, AcademicSession.name).join(
        AcademicSession, SchoolClass.session_id == AcademicSession.id
    )
    if session_id is not None:
        stmt = stmt.where(SchoolClass.session_id == session_id)
    stmt = stmt.order_by(AcademicSession.start_date.desc(), SchoolClass.name)
    result = await db.execute(stmt)
    return [_class_to_response(c, session_name) for c, session_name in result.unique().all()]


async def get_class(db: AsyncSession, class_id: UUID) -> Optional[ClassResponse]:
    obj = await db.get(SchoolClass, class_id)
    if not obj:
        return None
    session = await db.get(AcademicSession, obj.session_id)
    return _class_to_response(obj, session.name if session else None)


async def update_class(db: AsyncSession, class_id: UUID, payload: ClassUpdate) -> ClassResponse:
    obj = await db.get(SchoolClass, class_id)
    if not obj:
        raise ServiceError("Class not found", status.HTTP_404_NOT_FOUND)
    if payload.name is not None:
        obj.name = payload.name.strip()
    if "class_teacher_id" in payload.model_fields_set:
        await _validate_teacher(db, payload.class_teacher_id)
        obj.class_teacher_id = payload.class_teacher_id
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError("Class name already exists for this session", status.HTTP_409_CONFLICT)
    await db.refresh(obj)
    session = await db.get(AcademicSession, obj.session_id)
    return _class_to_response(obj, session.name if session else None)


async def delete_class(db: AsyncSession, class_id: UUID) -> None:
    obj = await db.get(SchoolClass, class_id)
    if not obj:
        raise ServiceError("Class not found", status.HTTP_404_NOT_FOUND)
    enrolled = (
        await db.execute(select(func.count()).select_from(Student).where(Student.class_id == class_id))
    ).scalar_one()
    if enrolled:
        raise ServiceError("Cannot delete a class with enrolled students", status.HTTP_409_CONFLICT)
    await db.delete(obj)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError("Class is referenced by fee or exam records and cannot be deleted", status.HTTP_409_CONFLICT)
