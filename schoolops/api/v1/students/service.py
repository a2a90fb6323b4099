import logging
from typing import List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolops.api.v1.fees import service as fee_service
from schoolops.core.enums import StudentStatus
from schoolops.core.exceptions import ServiceError
from schoolops.core.models import SchoolClass, Student

from .schemas import StudentCreate, StudentResponse, StudentUpdate

logger = logging.getLogger(__name__)


async def _to_response(db: AsyncSession, s: Student, with_fee_status: bool = True) -> StudentResponse:
    class_name = None
    if s.class_id:
        cl = await db.get(SchoolClass, s.class_id)
        class_name = cl.name if cl else None
    return StudentResponse(
        id=s.id,
        pan_number=s.pan_number,
        name=s.name,
        class_id=s.class_id,
        class_name=class_name,
        session_id=s.session_id,
        section=s.section,
        roll_number=s.roll_number,
        status=s.status,
        fee_status=await fee_service.get_fee_status(db, s) if with_fee_status else None,
        created_at=s.created_at,
        updated_at=s.updated_at,
    )


async def get_student_by_pan(db: AsyncSession, pan_number: str) -> Optional[Student]:
    result = await db.execute(select(Student).where(Student.pan_number == pan_number))
    return result.scalar_one_or_none()


async def _get_class_or_400(db: AsyncSession, class_id: UUID) -> SchoolClass:
    cl = await db.get(SchoolClass, class_id)
    if not cl:
        raise ServiceError("Invalid class", status.HTTP_400_BAD_REQUEST)
    return cl


async def create_student(
    db: AsyncSession,
    payload: StudentCreate,
    changed_by: Optional[UUID] = None,
) -> StudentResponse:
    """Admit a student. Admission into a class generates the fee schedule atomically with the student row."""
    pan = payload.pan_number.strip()
    if await get_student_by_pan(db, pan):
        raise ServiceError(f"Student with PAN '{pan}' already exists", status.HTTP_409_CONFLICT)
    school_class = await _get_class_or_400(db, payload.class_id) if payload.class_id else None
    student = Student(
        pan_number=pan,
        name=payload.name.strip(),
        class_id=school_class.id if school_class else None,
        session_id=school_class.session_id if school_class else None,
        section=payload.section,
        roll_number=payload.roll_number,
        status=StudentStatus.ACTIVE.value,
    )
    db.add(student)
    try:
        await db.flush()
        if school_class:
            await fee_service.regenerate_fee_schedule(db, student, school_class, changed_by=changed_by)
        await db.commit()
    except ServiceError:
        await db.rollback()
        raise
    except IntegrityError:
        await db.rollback()
        raise ServiceError(f"Student with PAN '{pan}' already exists", status.HTTP_409_CONFLICT)
    await db.refresh(student)
    logger.info("Student admitted: %s class=%s", student.pan_number, school_class.name if school_class else None)
    return await _to_response(db, student)


async def list_students(
    db: AsyncSession,
    class_id: Optional[UUID] = None,
    status_filter: Optional[StudentStatus] = None,
) -> List[StudentResponse]:
    stmt = select(Student)
    if class_id is not None:
        stmt = stmt.where(Student.class_id == class_id)
    if status_filter is not None:
        stmt = stmt.where(Student.status == status_filter.value)
    stmt = stmt.order_by(Student.roll_number.nulls_last(), Student.name)
    result = await db.execute(stmt)
    return [await _to_response(db, s) for s in result.scalars().all()]


async def get_student(db: AsyncSession, pan_number: str) -> Optional[StudentResponse]:
    s = await get_student_by_pan(db, pan_number)
    return await _to_response(db, s) if s else None


async def update_student(
    db: AsyncSession,
    pan_number: str,
    payload: StudentUpdate,
    changed_by: Optional[UUID] = None,
) -> StudentResponse:
    """
    Update a student. A class change regenerates the fee schedule inside the same transaction,
    so the call returns only after the new catalog is durable.
    """
    student = await get_student_by_pan(db, pan_number)
    if not student:
        raise ServiceError("Student not found", status.HTTP_404_NOT_FOUND)
    if payload.name is not None:
        student.name = payload.name.strip()
    if payload.section is not None:
        student.section = payload.section
    if payload.roll_number is not None:
        student.roll_number = payload.roll_number
    if payload.status is not None:
        student.status = payload.status.value

    new_class: Optional[SchoolClass] = None
    if "class_id" in payload.model_fields_set and payload.class_id != student.class_id:
        if payload.class_id is None:
            student.class_id = None
        else:
            new_class = await _get_class_or_400(db, payload.class_id)
            student.class_id = new_class.id
            student.session_id = new_class.session_id

    try:
        if new_class is not None:
            await db.flush()
            await fee_service.regenerate_fee_schedule(db, student, new_class, changed_by=changed_by)
        await db.commit()
    except ServiceError:
        await db.rollback()
        raise
    await db.refresh(student)
    if new_class is not None:
        logger.info("Student %s moved to class %s", student.pan_number, new_class.name)
    return await _to_response(db, student)
