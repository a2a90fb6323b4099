import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolops.core.exceptions import ServiceError
from schoolops.core.models import ClassExam, ExamType, SchoolClass, Score, Student

from .schemas import (
    ClassExamAssign,
    ClassExamResponse,
    ExamTypeCreate,
    ExamTypeResponse,
    MarksUpload,
    ScoreResponse,
)

logger = logging.getLogger(__name__)

# (minimum percentage, grade), highest first. 40 is the pass mark.
GRADE_BANDS = (
    (Decimal("90"), "A+"),
    (Decimal("80"), "A"),
    (Decimal("70"), "B+"),
    (Decimal("60"), "B"),
    (Decimal("50"), "C"),
    (Decimal("40"), "D"),
)


def calculate_grade(percentage: Decimal) -> str:
    for floor, grade in GRADE_BANDS:
        if percentage >= floor:
            return grade
    return "F"


def calculate_percentage(marks: Decimal, max_marks: int) -> Decimal:
    return (Decimal(marks) * 100 / Decimal(max_marks)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


# --- Exam types ---
async def create_exam_type(db: AsyncSession, payload: ExamTypeCreate) -> ExamTypeResponse:
    et = ExamType(name=payload.name.strip(), description=payload.description)
    db.add(et)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError(f"Exam type '{payload.name.strip()}' already exists", status.HTTP_409_CONFLICT)
    await db.refresh(et)
    return ExamTypeResponse.model_validate(et)


async def list_exam_types(db: AsyncSession) -> List[ExamTypeResponse]:
    result = await db.execute(select(ExamType).order_by(ExamType.name))
    return [ExamTypeResponse.model_validate(e) for e in result.scalars().all()]


# --- Class exams ---
def _class_exam_to_response(ce: ClassExam) -> ClassExamResponse:
    return ClassExamResponse(
        id=ce.id,
        class_id=ce.class_id,
        class_name=ce.school_class.name,
        exam_type_id=ce.exam_type_id,
        exam_type_name=ce.exam_type.name,
        max_marks=ce.max_marks,
        passing_marks=ce.passing_marks,
        exam_date=ce.exam_date,
    )


async def list_class_exams_for_type(db: AsyncSession, exam_type_id: UUID) -> List[ClassExamResponse]:
    result = await db.execute(
        select(ClassExam)
        .where(ClassExam.exam_type_id == exam_type_id)
        .execution_options(populate_existing=True)
    )
    rows = sorted(result.scalars().all(), key=lambda ce: ce.school_class.name)
    return [_class_exam_to_response(ce) for ce in rows]


async def list_class_exams_for_class(db: AsyncSession, class_id: UUID) -> List[ClassExamResponse]:
    result = await db.execute(select(ClassExam).where(ClassExam.class_id == class_id))
    rows = sorted(result.scalars().all(), key=lambda ce: ce.exam_type.name)
    return [_class_exam_to_response(ce) for ce in rows]


async def replace_class_exams(
    db: AsyncSession,
    exam_type_id: UUID,
    payload: ClassExamAssign,
) -> List[ClassExamResponse]:
    """
    Make the exam type's class assignments exactly payload.class_ids, in one transaction.
    Kept classes get the new marking scheme; dropped classes lose their assignment and scores.
    """
    if not await db.get(ExamType, exam_type_id):
        raise ServiceError("Exam type not found", status.HTTP_404_NOT_FOUND)
    wanted = list(dict.fromkeys(payload.class_ids))
    for class_id in wanted:
        if not await db.get(SchoolClass, class_id):
            raise ServiceError(f"Class {class_id} not found", status.HTTP_400_BAD_REQUEST)

    existing = {
        ce.class_id: ce
        for ce in (
            await db.execute(select(ClassExam).where(ClassExam.exam_type_id == exam_type_id))
        ).scalars().all()
    }
    removed = [ce for class_id, ce in existing.items() if class_id not in wanted]
    if removed:
        await db.execute(delete(Score).where(Score.class_exam_id.in_([ce.id for ce in removed])))
        for ce in removed:
            await db.delete(ce)
    for class_id in wanted:
        ce = existing.get(class_id)
        if ce is None:
            ce = ClassExam(class_id=class_id, exam_type_id=exam_type_id)
            db.add(ce)
        ce.max_marks = payload.max_marks
        ce.passing_marks = payload.passing_marks
        ce.exam_date = payload.exam_date
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError("Class exam assignment conflicts with existing data", status.HTTP_409_CONFLICT)
    logger.info("Exam type %s assigned to %d classes (%d removed)", exam_type_id, len(wanted), len(removed))
    return await list_class_exams_for_type(db, exam_type_id)


# --- Marks ---
def _score_to_response(score: Score, ce: ClassExam) -> ScoreResponse:
    marks = Decimal(score.marks)
    percentage = calculate_percentage(marks, ce.max_marks)
    return ScoreResponse(
        id=score.id,
        student_pan=score.student.pan_number,
        student_name=score.student.name,
        subject=score.subject,
        marks=marks,
        max_marks=ce.max_marks,
        percentage=percentage,
        grade=calculate_grade(percentage),
        passed=marks >= ce.passing_marks,
    )


async def list_marks(
    db: AsyncSession,
    class_exam_id: UUID,
    subject: Optional[str] = None,
) -> List[ScoreResponse]:
    ce = await db.get(ClassExam, class_exam_id)
    if not ce:
        raise ServiceError("Class exam not found", status.HTTP_404_NOT_FOUND)
    stmt = select(Score).where(Score.class_exam_id == class_exam_id).execution_options(populate_existing=True)
    if subject:
        stmt = stmt.where(Score.subject == subject.strip())
    rows = (await db.execute(stmt)).scalars().all()
    rows = sorted(rows, key=lambda s: (s.subject, s.student.roll_number or 0, s.student.name))
    return [_score_to_response(s, ce) for s in rows]


async def upload_marks(db: AsyncSession, payload: MarksUpload) -> List[ScoreResponse]:
    """Upsert marks for one subject of a class exam. Every entry is checked before anything is written."""
    ce = await db.get(ClassExam, payload.class_exam_id)
    if not ce:
        raise ServiceError("Class exam not found", status.HTTP_404_NOT_FOUND)
    subject = payload.subject.strip()

    resolved = []
    for entry in payload.marks:
        if entry.marks < 0 or entry.marks > ce.max_marks:
            raise ServiceError(
                f"Marks for student '{entry.student_pan}' must be between 0 and {ce.max_marks}",
                status.HTTP_400_BAD_REQUEST,
            )
        student = (
            await db.execute(select(Student).where(Student.pan_number == entry.student_pan.strip()))
        ).scalar_one_or_none()
        if not student:
            raise ServiceError(f"Student '{entry.student_pan}' not found", status.HTTP_404_NOT_FOUND)
        if student.class_id != ce.class_id:
            raise ServiceError(
                f"Student '{entry.student_pan}' is not enrolled in this class",
                status.HTTP_400_BAD_REQUEST,
            )
        resolved.append((student, entry.marks))

    for student, marks in resolved:
        score = (
            await db.execute(
                select(Score).where(
                    Score.class_exam_id == ce.id,
                    Score.student_id == student.id,
                    Score.subject == subject,
                )
            )
        ).scalar_one_or_none()
        if score is None:
            db.add(Score(class_exam_id=ce.id, student_id=student.id, subject=subject, marks=marks))
        else:
            score.marks = marks
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError("Marks were changed concurrently; reload and try again", status.HTTP_409_CONFLICT)
    logger.info("Marks uploaded: class_exam=%s subject=%s entries=%d", ce.id, subject, len(resolved))
    return await list_marks(db, ce.id, subject=subject)
