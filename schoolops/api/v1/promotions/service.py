"""
Promotion workflow: collect per-student decisions for a class, then apply every pending
decision of a session in one transaction (class moves, graduation, fee regeneration).
"""

import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolops.api.v1.fees import service as fee_service
from schoolops.auth.schemas import CurrentUser
from schoolops.core.enums import PromotionStatus, StudentStatus
from schoolops.core.exceptions import ServiceError
from schoolops.core.models import AcademicSession, PromotionRecord, SchoolClass, Student

from .schemas import (
    PromotionAssignRequest,
    PromotionExecutionResult,
    PromotionRecordResponse,
    PromotionSummary,
)

logger = logging.getLogger(__name__)

NO_PENDING_PROMOTIONS_MESSAGE = "No pending promotions"


def _to_response(rec: PromotionRecord, student: Student) -> PromotionRecordResponse:
    return PromotionRecordResponse(
        id=rec.id,
        student_id=rec.student_id,
        student_pan=student.pan_number,
        student_name=student.name,
        session_id=rec.session_id,
        from_class_name=rec.from_class_name,
        to_class_name=rec.to_class_name,
        is_graduated=rec.is_graduated,
        status=rec.status,
        remarks=rec.remarks,
        to_session_id=rec.to_session_id,
        executed_at=rec.executed_at,
        created_at=rec.created_at,
        updated_at=rec.updated_at,
    )


def validate_session_pair(from_session_id: Optional[UUID], to_session_id: Optional[UUID]) -> None:
    if from_session_id is None or to_session_id is None:
        raise ServiceError("Both source and target sessions are required", status.HTTP_400_BAD_REQUEST)
    if from_session_id == to_session_id:
        raise ServiceError("Source and target sessions must be different", status.HTTP_400_BAD_REQUEST)


# --- Assignment ---
async def assign_promotions(
    db: AsyncSession,
    payload: PromotionAssignRequest,
    current_user: CurrentUser,
) -> List[PromotionRecordResponse]:
    """
    Upsert one PENDING record per student of the class for the source session.
    Only an administrator or the class teacher may assign. Student and fee state are not touched.
    """
    cls = await db.get(SchoolClass, payload.class_id)
    if not cls:
        raise ServiceError("Class not found", status.HTTP_404_NOT_FOUND)
    if cls.session_id != payload.session_id:
        raise ServiceError("Class does not belong to the selected session", status.HTTP_400_BAD_REQUEST)
    if not current_user.is_admin and (
        cls.class_teacher_id is None or cls.class_teacher_id != current_user.teacher_id
    ):
        raise ServiceError(
            "Only the class teacher or an administrator can assign promotions for this class",
            status.HTTP_403_FORBIDDEN,
        )

    pans = [a.student_pan.strip() for a in payload.assignments]
    duplicates = sorted(p for p, n in Counter(pans).items() if n > 1)
    if duplicates:
        raise ServiceError(
            f"Duplicate assignments for: {', '.join(duplicates)}",
            status.HTTP_400_BAD_REQUEST,
        )

    saved: List[tuple] = []
    for item, pan in zip(payload.assignments, pans):
        student = (
            await db.execute(select(Student).where(Student.pan_number == pan))
        ).scalar_one_or_none()
        if not student:
            raise ServiceError(f"Student '{pan}' not found", status.HTTP_404_NOT_FOUND)

        rec = (
            await db.execute(
                select(PromotionRecord).where(
                    PromotionRecord.student_id == student.id,
                    PromotionRecord.session_id == payload.session_id,
                )
            )
        ).scalar_one_or_none()
        if rec is not None and rec.status != PromotionStatus.PENDING.value:
            raise ServiceError(
                f"Promotion for student '{pan}' has already been executed",
                status.HTTP_409_CONFLICT,
            )
        if student.class_id != cls.id:
            raise ServiceError(f"Student '{pan}' is not enrolled in class '{cls.name}'", status.HTTP_400_BAD_REQUEST)
        if student.status != StudentStatus.ACTIVE.value:
            raise ServiceError(f"Student '{pan}' is not active", status.HTTP_400_BAD_REQUEST)

        to_class_name = None
        if item.to_class_id is not None:
            to_class = await db.get(SchoolClass, item.to_class_id)
            if not to_class:
                raise ServiceError(f"Target class for student '{pan}' not found", status.HTTP_400_BAD_REQUEST)
            to_class_name = to_class.name

        if rec is None:
            rec = PromotionRecord(student_id=student.id, session_id=payload.session_id)
            db.add(rec)
        rec.from_class_name = cls.name
        rec.to_class_name = to_class_name
        rec.is_graduated = item.is_graduated
        rec.status = PromotionStatus.PENDING.value
        rec.remarks = item.remarks
        rec.updated_at = datetime.utcnow()
        saved.append((rec, student))

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError(
            "Promotion records for this class were changed concurrently; reload and try again",
            status.HTTP_409_CONFLICT,
        )
    for rec, _ in saved:
        await db.refresh(rec)
    logger.info("Promotions assigned: class=%s session=%s count=%d", cls.name, payload.session_id, len(saved))
    return [_to_response(rec, student) for rec, student in saved]


# --- Queries ---
async def _records_with_students(db: AsyncSession, stmt) -> List[PromotionRecordResponse]:
    rows = (await db.execute(stmt.order_by(PromotionRecord.from_class_name, PromotionRecord.created_at))).scalars().all()
    return [_to_response(r, r.student) for r in rows]


async def list_class_promotions(
    db: AsyncSession,
    class_id: UUID,
    session_id: Optional[UUID] = None,
) -> List[PromotionRecordResponse]:
    cls = await db.get(SchoolClass, class_id)
    if not cls:
        raise ServiceError("Class not found", status.HTTP_404_NOT_FOUND)
    stmt = select(PromotionRecord).where(
        PromotionRecord.session_id == (session_id or cls.session_id),
        PromotionRecord.from_class_name == cls.name,
    )
    return await _records_with_students(db, stmt)


async def list_session_promotions(db: AsyncSession, session_id: UUID) -> List[PromotionRecordResponse]:
    if not await db.get(AcademicSession, session_id):
        raise ServiceError("Session not found", status.HTTP_404_NOT_FOUND)
    return await _records_with_students(db, select(PromotionRecord).where(PromotionRecord.session_id == session_id))


def summarize_records(session_id: UUID, records: List[PromotionRecordResponse]) -> PromotionSummary:
    summary = PromotionSummary(session_id=session_id)
    by_status: Dict[PromotionStatus, int] = Counter()
    for r in records:
        by_status[r.status] += 1
        if r.status != PromotionStatus.PENDING:
            continue
        if r.is_graduated:
            summary.graduated += 1
        elif r.to_class_name:
            summary.promoted += 1
        else:
            summary.detained += 1
    summary.total = summary.promoted + summary.graduated + summary.detained
    summary.by_status = dict(by_status)
    return summary


async def get_session_summary(db: AsyncSession, session_id: UUID) -> PromotionSummary:
    return summarize_records(session_id, await list_session_promotions(db, session_id))


# --- Execution ---
def pending_records_stmt(session_id: UUID):
    """PENDING records of a session, row-locked until the executing transaction ends."""
    return (
        select(PromotionRecord)
        .where(
            PromotionRecord.session_id == session_id,
            PromotionRecord.status == PromotionStatus.PENDING.value,
        )
        .order_by(PromotionRecord.created_at)
        .with_for_update(of=PromotionRecord)
    )


async def _apply_record(
    db: AsyncSession,
    rec: PromotionRecord,
    student: Student,
    target_classes: Dict[str, SchoolClass],
    changed_by: Optional[UUID],
) -> PromotionStatus:
    if rec.is_graduated:
        student.status = StudentStatus.GRADUATED.value
        student.class_id = None
        return PromotionStatus.GRADUATED

    if rec.to_class_name:
        target = target_classes[rec.to_class_name]
        student.class_id = target.id
        student.session_id = target.session_id
        await db.flush()
        await fee_service.regenerate_fee_schedule(db, student, target, changed_by=changed_by)
        return PromotionStatus.PROMOTED

    # Detained: repeat the same-named class of the new session when it exists.
    same = target_classes.get(rec.from_class_name)
    if same is not None:
        student.class_id = same.id
        student.session_id = same.session_id
        await db.flush()
        await fee_service.regenerate_fee_schedule(db, student, same, changed_by=changed_by)
    return PromotionStatus.DETAINED


async def execute_promotions(
    db: AsyncSession,
    from_session_id: Optional[UUID],
    to_session_id: Optional[UUID],
    changed_by: Optional[UUID] = None,
) -> PromotionExecutionResult:
    """
    Apply every PENDING promotion of from_session into to_session in a single transaction.
    Any failure rolls back the whole pass. Re-running after success finds nothing pending.
    """
    validate_session_pair(from_session_id, to_session_id)
    from_session = await db.get(AcademicSession, from_session_id)
    if not from_session:
        raise ServiceError("Source session not found", status.HTTP_404_NOT_FOUND)
    to_session = await db.get(AcademicSession, to_session_id)
    if not to_session:
        raise ServiceError("Target session not found", status.HTTP_404_NOT_FOUND)

    pending = (await db.execute(pending_records_stmt(from_session_id))).scalars().all()
    if not pending:
        raise ServiceError(NO_PENDING_PROMOTIONS_MESSAGE, status.HTTP_400_BAD_REQUEST)

    target_classes = {
        c.name: c
        for c in (
            await db.execute(select(SchoolClass).where(SchoolClass.session_id == to_session_id))
        ).scalars().all()
    }
    missing = sorted(
        {r.to_class_name for r in pending if r.to_class_name and r.to_class_name not in target_classes}
    )
    if missing:
        raise ServiceError(
            f"Target classes not found in session '{to_session.name}': {', '.join(missing)}",
            status.HTTP_400_BAD_REQUEST,
        )

    from_name, to_name = from_session.name, to_session.name
    counts: Counter = Counter()
    now = datetime.now(timezone.utc)
    try:
        for rec in pending:
            student = await db.get(Student, rec.student_id)
            outcome = await _apply_record(db, rec, student, target_classes, changed_by)
            rec.status = outcome.value
            rec.to_session_id = to_session_id
            rec.executed_at = now
            rec.updated_at = datetime.utcnow()
            student.updated_at = datetime.utcnow()
            counts[outcome] += 1
        await db.commit()
    except ServiceError as e:
        await db.rollback()
        logger.warning("Promotion execution %s -> %s rolled back (%s): %s", from_name, to_name, e.kind.value, e.message)
        raise ServiceError(f"Promotion execution failed: {e.message}", e.status_code)
    except IntegrityError as e:
        await db.rollback()
        logger.warning("Promotion execution %s -> %s rolled back: %s", from_name, to_name, e.orig)
        raise ServiceError(
            "Promotion execution failed: conflicting records in the target session",
            status.HTTP_409_CONFLICT,
        )

    result = PromotionExecutionResult(
        from_session_id=from_session_id,
        to_session_id=to_session_id,
        processed=len(pending),
        promoted=counts[PromotionStatus.PROMOTED],
        graduated=counts[PromotionStatus.GRADUATED],
        detained=counts[PromotionStatus.DETAINED],
    )
    logger.info(
        "Promotions executed %s -> %s: processed=%d promoted=%d graduated=%d detained=%d",
        from_name,
        to_name,
        result.processed,
        result.promoted,
        result.graduated,
        result.detained,
    )
    return result
