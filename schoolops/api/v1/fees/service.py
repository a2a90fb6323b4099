"""Fees service: class fee structure, monthly schedule generation/regeneration, catalog, payments. Audited."""

import logging
import secrets
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from fastapi import status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolops.core.config import settings
from schoolops.core.enums import MONTH_NAMES, FeeStatusSummary, MonthlyFeeStatus
from schoolops.core.exceptions import ServiceError
from schoolops.core.models import (
    AcademicSession,
    ClassFeeStructure,
    FeeAuditLog,
    MonthlyFee,
    SchoolClass,
    Student,
)

from .schemas import (
    ClassFeeStructureCreate,
    ClassFeeStructureResponse,
    ClassFeeStructureSummary,
    FeeCatalogResponse,
    FeePaymentCreate,
    MonthlyFeeResponse,
)

logger = logging.getLogger(__name__)

FEES_ALREADY_EXIST_MESSAGE = "Fee records already exist for this student"


def _to_decimal(val) -> Decimal:
    if val is None:
        return Decimal("0")
    return val if isinstance(val, Decimal) else Decimal(str(val))


# --- Audit helper ---
async def _log_fee_audit(
    db: AsyncSession,
    reference_table: str,
    reference_id: UUID,
    action_type: str,
    old_value: Optional[dict],
    new_value: Optional[dict],
    changed_by: Optional[UUID],
) -> None:
    log = FeeAuditLog(
        reference_table=reference_table,
        reference_id=reference_id,
        action_type=action_type,
        old_value=old_value,
        new_value=new_value,
        changed_by=changed_by,
    )
    db.add(log)


def _fee_snapshot(fee: MonthlyFee) -> dict:
    return {
        "student_id": str(fee.student_id),
        "class_id": str(fee.class_id),
        "month": fee.month,
        "year": fee.year,
        "amount": str(fee.amount),
        "status": fee.status,
        "receipt_number": fee.receipt_number,
    }


# --- Schedule helpers ---
def session_months(start_date: date, end_date: date) -> List[Tuple[str, int]]:
    """(MONTH, year) for every calendar month from the start month to the end month inclusive."""
    months = []
    year, month = start_date.year, start_date.month
    while (year, month) <= (end_date.year, end_date.month):
        months.append((MONTH_NAMES[month - 1], year))
        month += 1
        if month > 12:
            month = 1
            year += 1
    return months


def effective_status(fee: MonthlyFee, today: Optional[date] = None) -> MonthlyFeeStatus:
    """PENDING fees past their due date read as OVERDUE."""
    today = today or date.today()
    if fee.status == MonthlyFeeStatus.PENDING.value and fee.due_date < today:
        return MonthlyFeeStatus.OVERDUE
    return MonthlyFeeStatus(fee.status)


def generate_receipt_number(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"{settings.receipt_prefix}-{today:%Y%m%d}-{secrets.token_hex(3).upper()}"


async def get_monthly_rate(db: AsyncSession, class_id: UUID) -> Optional[Decimal]:
    """Sum of the class's active fee components, or None when the class has no fee structure."""
    result = await db.execute(
        select(func.count(ClassFeeStructure.id), func.coalesce(func.sum(ClassFeeStructure.amount), 0)).where(
            ClassFeeStructure.class_id == class_id,
            ClassFeeStructure.is_active.is_(True),
        )
    )
    count, total = result.one()
    if not count:
        return None
    return _to_decimal(total)


async def regenerate_fee_schedule(
    db: AsyncSession,
    student: Student,
    school_class: SchoolClass,
    changed_by: Optional[UUID] = None,
) -> List[MonthlyFee]:
    """
    Replace the student's monthly fees for the class's session with the class's schedule.
    Months already PAID keep the amount actually paid along with payment date and receipt;
    every other month takes the new class's rate. Flushes but does not commit: the caller owns the transaction.
    """
    session = await db.get(AcademicSession, school_class.session_id)
    if not session:
        raise ServiceError("Invalid session for class", status.HTTP_400_BAD_REQUEST)
    rate = await get_monthly_rate(db, school_class.id)
    if rate is None:
        raise ServiceError(
            f"No fee structure defined for class '{school_class.name}'",
            status.HTTP_400_BAD_REQUEST,
        )

    existing = (
        await db.execute(
            select(MonthlyFee).where(
                MonthlyFee.student_id == student.id,
                MonthlyFee.session_id == session.id,
            )
        )
    ).scalars().all()
    paid: Dict[Tuple[str, int], MonthlyFee] = {
        (f.month, f.year): f for f in existing if f.status == MonthlyFeeStatus.PAID.value
    }
    paid_snapshots = {key: (f.amount, f.payment_date, f.receipt_number) for key, f in paid.items()}
    for fee in existing:
        await _log_fee_audit(db, "monthly_fees", fee.id, "DELETE", _fee_snapshot(fee), None, changed_by)
        await db.delete(fee)
    # Deletes must hit the database before the inserts below reuse the same month keys.
    await db.flush()

    due_day = settings.fee_due_day
    created: List[MonthlyFee] = []
    for month_name, year in session_months(session.start_date, session.end_date):
        month_index = MONTH_NAMES.index(month_name) + 1
        fee = MonthlyFee(
            student_id=student.id,
            session_id=session.id,
            class_id=school_class.id,
            month=month_name,
            year=year,
            amount=rate,
            due_date=date(year, month_index, due_day),
            status=MonthlyFeeStatus.PENDING.value,
        )
        if (month_name, year) in paid_snapshots:
            fee.status = MonthlyFeeStatus.PAID.value
            fee.amount, fee.payment_date, fee.receipt_number = paid_snapshots[(month_name, year)]
        db.add(fee)
        created.append(fee)
    await db.flush()
    for fee in created:
        await _log_fee_audit(db, "monthly_fees", fee.id, "CREATE", None, _fee_snapshot(fee), changed_by)

    logger.info(
        "Fee schedule regenerated for %s: class=%s session=%s months=%d rate=%s (replaced %d)",
        student.pan_number,
        school_class.name,
        session.name,
        len(created),
        rate,
        len(existing),
    )
    return created


async def _get_student_by_pan(db: AsyncSession, pan_number: str) -> Student:
    student = (
        await db.execute(select(Student).where(Student.pan_number == pan_number))
    ).scalar_one_or_none()
    if not student:
        raise ServiceError("Student not found", status.HTTP_404_NOT_FOUND)
    return student


# --- Class Fee Structure ---
async def create_class_fee_structure(
    db: AsyncSession,
    payload: ClassFeeStructureCreate,
) -> ClassFeeStructureResponse:
    cl = await db.get(SchoolClass, payload.class_id)
    if not cl:
        raise ServiceError("Invalid class", status.HTTP_400_BAD_REQUEST)
    cfs = ClassFeeStructure(
        class_id=payload.class_id,
        component_name=payload.component_name.strip(),
        amount=payload.amount,
        is_active=True,
    )
    db.add(cfs)
    try:
        await db.flush()
        await _log_fee_audit(
            db, "class_fee_structures", cfs.id, "CREATE", None,
            {"class_id": str(payload.class_id), "component_name": cfs.component_name, "amount": str(payload.amount)},
            None,
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError(
            "This class already has this fee component",
            status.HTTP_409_CONFLICT,
        )
    await db.refresh(cfs)
    return ClassFeeStructureResponse.model_validate(cfs)


async def get_class_fee_structure(db: AsyncSession, class_id: UUID) -> ClassFeeStructureSummary:
    cl = await db.get(SchoolClass, class_id)
    if not cl:
        raise ServiceError("Class not found", status.HTTP_404_NOT_FOUND)
    rows = (
        await db.execute(
            select(ClassFeeStructure)
            .where(ClassFeeStructure.class_id == class_id, ClassFeeStructure.is_active.is_(True))
            .order_by(ClassFeeStructure.component_name)
        )
    ).scalars().all()
    items = [ClassFeeStructureResponse.model_validate(r) for r in rows]
    return ClassFeeStructureSummary(
        class_id=cl.id,
        class_name=cl.name,
        monthly_amount=sum((i.amount for i in items), Decimal("0")),
        items=items,
    )


# --- Generation / catalog ---
async def generate_fees_for_student(
    db: AsyncSession,
    pan_number: str,
    changed_by: Optional[UUID] = None,
) -> FeeCatalogResponse:
    """Generate the schedule for the student's current class. Never produces duplicates: 409 if any exist."""
    student = await _get_student_by_pan(db, pan_number)
    if not student.class_id:
        raise ServiceError(
            "Student is not assigned to any class",
            status.HTTP_400_BAD_REQUEST,
        )
    school_class = await db.get(SchoolClass, student.class_id)
    count = (
        await db.execute(
            select(func.count(MonthlyFee.id)).where(
                MonthlyFee.student_id == student.id,
                MonthlyFee.session_id == school_class.session_id,
            )
        )
    ).scalar_one()
    if count:
        raise ServiceError(FEES_ALREADY_EXIST_MESSAGE, status.HTTP_409_CONFLICT)
    await regenerate_fee_schedule(db, student, school_class, changed_by=changed_by)
    await db.commit()
    return await get_fee_catalog(db, pan_number)


def _to_fee_response(fee: MonthlyFee, today: date) -> MonthlyFeeResponse:
    return MonthlyFeeResponse(
        id=fee.id,
        class_id=fee.class_id,
        month=fee.month,
        year=fee.year,
        amount=_to_decimal(fee.amount),
        due_date=fee.due_date,
        status=effective_status(fee, today),
        payment_date=fee.payment_date,
        receipt_number=fee.receipt_number,
    )


def summarize_fee_status(total_pending: Decimal, total_overdue: Decimal) -> FeeStatusSummary:
    if total_overdue > 0:
        return FeeStatusSummary.overdue
    if total_pending > 0:
        return FeeStatusSummary.pending
    return FeeStatusSummary.paid


async def _catalog_for_student(db: AsyncSession, student: Student, today: Optional[date] = None) -> FeeCatalogResponse:
    today = today or date.today()
    fees: List[MonthlyFee] = []
    if student.session_id is not None:
        fees = (
            await db.execute(
                select(MonthlyFee)
                .where(MonthlyFee.student_id == student.id, MonthlyFee.session_id == student.session_id)
                .order_by(MonthlyFee.due_date)
            )
        ).scalars().all()
    monthly = [_to_fee_response(f, today) for f in fees]
    totals = {s: Decimal("0") for s in MonthlyFeeStatus}
    for f in monthly:
        totals[f.status] += f.amount
    class_name = None
    if student.class_id:
        cl = await db.get(SchoolClass, student.class_id)
        class_name = cl.name if cl else None
    return FeeCatalogResponse(
        student_pan=student.pan_number,
        student_name=student.name,
        class_id=student.class_id,
        class_name=class_name,
        session_id=student.session_id,
        monthly_fees=monthly,
        total_amount=sum(totals.values(), Decimal("0")),
        total_paid=totals[MonthlyFeeStatus.PAID],
        total_pending=totals[MonthlyFeeStatus.PENDING],
        total_overdue=totals[MonthlyFeeStatus.OVERDUE],
        fee_status=summarize_fee_status(totals[MonthlyFeeStatus.PENDING], totals[MonthlyFeeStatus.OVERDUE]),
    )


async def get_fee_catalog(db: AsyncSession, pan_number: str, today: Optional[date] = None) -> FeeCatalogResponse:
    student = await _get_student_by_pan(db, pan_number)
    return await _catalog_for_student(db, student, today=today)


async def get_fee_status(db: AsyncSession, student: Student) -> FeeStatusSummary:
    catalog = await _catalog_for_student(db, student)
    return catalog.fee_status


# --- Payment ---
async def pay_fee(
    db: AsyncSession,
    payload: FeePaymentCreate,
    changed_by: Optional[UUID] = None,
) -> MonthlyFeeResponse:
    """Mark one monthly fee PAID. Forward-only: a PAID fee cannot be paid again."""
    student = await _get_student_by_pan(db, payload.student_pan)
    if not student.class_id:
        raise ServiceError(
            "Cannot process payment: Student is not assigned to any class. "
            "Please assign the student to a class first.",
            status.HTTP_400_BAD_REQUEST,
        )
    if payload.class_id is not None and payload.class_id != student.class_id:
        raise ServiceError("Class does not match the student's current class", status.HTTP_400_BAD_REQUEST)
    session_id = payload.session_id or student.session_id

    stmt = select(MonthlyFee).where(
        MonthlyFee.student_id == student.id,
        MonthlyFee.session_id == session_id,
        MonthlyFee.month == payload.month,
    )
    if payload.year is not None:
        stmt = stmt.where(MonthlyFee.year == payload.year)
    matches = (await db.execute(stmt)).scalars().all()
    if not matches:
        raise ServiceError(f"No fee record for {payload.month}", status.HTTP_404_NOT_FOUND)
    if len(matches) > 1:
        raise ServiceError(f"Multiple fee records for {payload.month}; specify the year", status.HTTP_400_BAD_REQUEST)
    fee = matches[0]
    if fee.status == MonthlyFeeStatus.PAID.value:
        raise ServiceError(f"Fee for {fee.month} {fee.year} is already paid", status.HTTP_409_CONFLICT)
    if _to_decimal(payload.amount) != _to_decimal(fee.amount):
        raise ServiceError(
            f"Payment amount {payload.amount} does not match fee amount {fee.amount}",
            status.HTTP_400_BAD_REQUEST,
        )

    old = _fee_snapshot(fee)
    today = date.today()
    fee.status = MonthlyFeeStatus.PAID.value
    fee.payment_date = today
    fee.receipt_number = (payload.receipt_number or "").strip() or generate_receipt_number(today)
    fee.updated_at = datetime.utcnow()
    await _log_fee_audit(db, "monthly_fees", fee.id, "PAY", old, _fee_snapshot(fee), changed_by)
    await db.commit()
    await db.refresh(fee)
    logger.info("Fee paid: %s %s %s receipt=%s", student.pan_number, fee.month, fee.year, fee.receipt_number)
    return _to_fee_response(fee, today)
