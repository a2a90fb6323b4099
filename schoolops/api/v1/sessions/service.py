import logging
from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolops.core.exceptions import ServiceError
from schoolops.core.models import AcademicSession, MonthlyFee, PromotionRecord, SchoolClass

from .schemas import SessionCreate, SessionResponse, SessionUpdate

logger = logging.getLogger(__name__)


def _to_response(s: AcademicSession) -> SessionResponse:
    return SessionResponse.model_validate(s)


def _validate_dates(start_date: date, end_date: date) -> None:
    if end_date <= start_date:
        raise ServiceError("End date must be after start date", status.HTTP_400_BAD_REQUEST)


async def _get_or_404(db: AsyncSession, session_id: UUID) -> AcademicSession:
    s = await db.get(AcademicSession, session_id)
    if not s:
        raise ServiceError("Session not found", status.HTTP_404_NOT_FOUND)
    return s


async def create_session(db: AsyncSession, payload: SessionCreate) -> SessionResponse:
    """Create session. If active=true, deactivate every other session in the same transaction."""
    _validate_dates(payload.start_date, payload.end_date)
    name = payload.name.strip()
    existing = await db.execute(select(AcademicSession).where(AcademicSession.name == name))
    if existing.scalar_one_or_none():
        raise ServiceError(f"Session with name '{name}' already exists", status.HTTP_409_CONFLICT)
    if payload.active:
        await db.execute(update(AcademicSession).values(active=False))
    s = AcademicSession(
        name=name,
        start_date=payload.start_date,
        end_date=payload.end_date,
        active=payload.active,
    )
    db.add(s)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError(f"Session with name '{name}' already exists", status.HTTP_409_CONFLICT)
    await db.refresh(s)
    logger.info("Session created: %s (active=%s)", s.name, s.active)
    return _to_response(s)


async def list_sessions(db: AsyncSession) -> List[SessionResponse]:
    result = await db.execute(select(AcademicSession).order_by(AcademicSession.start_date.desc()))
    return [_to_response(s) for s in result.scalars().all()]


async def get_session(db: AsyncSession, session_id: UUID) -> Optional[SessionResponse]:
    s = await db.get(AcademicSession, session_id)
    return _to_response(s) if s else None


async def get_active_session(db: AsyncSession) -> Optional[SessionResponse]:
    result = await db.execute(select(AcademicSession).where(AcademicSession.active.is_(True)))
    s = result.scalars().first()
    return _to_response(s) if s else None


async def update_session(db: AsyncSession, session_id: UUID, payload: SessionUpdate) -> SessionResponse:
    s = await _get_or_404(db, session_id)
    if payload.name is not None:
        name = payload.name.strip()
        other = await db.execute(
            select(AcademicSession).where(AcademicSession.name == name, AcademicSession.id != session_id)
        )
        if other.scalar_one_or_none():
            raise ServiceError(f"Session with name '{name}' already exists", status.HTTP_409_CONFLICT)
        s.name = name
    start_date = payload.start_date if payload.start_date is not None else s.start_date
    end_date = payload.end_date if payload.end_date is not None else s.end_date
    _validate_dates(start_date, end_date)
    s.start_date = start_date
    s.end_date = end_date
    await db.commit()
    await db.refresh(s)
    return _to_response(s)


async def activate_session(db: AsyncSession, session_id: UUID) -> SessionResponse:
    """Set this session active; all others become inactive."""
    s = await _get_or_404(db, session_id)
    await db.execute(update(AcademicSession).where(AcademicSession.id != session_id).values(active=False))
    s.active = True
    await db.commit()
    await db.refresh(s)
    logger.info("Session activated: %s", s.name)
    return _to_response(s)


async def delete_session(db: AsyncSession, session_id: UUID) -> None:
    """Delete an inactive session that nothing references."""
    s = await _get_or_404(db, session_id)
    if s.active:
        raise ServiceError(
            "Cannot delete the active session. Please activate another session first.",
            status.HTTP_400_BAD_REQUEST,
        )
    for model in (SchoolClass, PromotionRecord, MonthlyFee):
        count = (
            await db.execute(select(func.count()).select_from(model).where(model.session_id == session_id))
        ).scalar_one()
        if count:
            raise ServiceError(
                f"Session '{s.name}' is referenced by existing {model.__tablename__} and cannot be deleted",
                status.HTTP_409_CONFLICT,
            )
    await db.delete(s)
    await db.commit()
    logger.info("Session deleted: %s", s.name)
