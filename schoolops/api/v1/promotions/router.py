from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from schoolops.auth.dependencies import get_current_user
from schoolops.auth.rbac import require_admin
from schoolops.auth.schemas import CurrentUser
from schoolops.core.exceptions import ServiceError
from schoolops.core.schemas import Envelope
from schoolops.db.session import get_db

from .schemas import (
    PromotionAssignRequest,
    PromotionExecutionResult,
    PromotionRecordResponse,
    PromotionSummary,
)
from . import service

router = APIRouter(prefix="/promotions", tags=["promotions"])


@router.post(
    "/assign",
    response_model=Envelope[List[PromotionRecordResponse]],
)
async def assign_promotions(
    payload: PromotionAssignRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> Envelope[List[PromotionRecordResponse]]:
    """Save promotion decisions for a class. Administrator or the class teacher only."""
    try:
        saved = await service.assign_promotions(db, payload, current_user)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Envelope(data=saved, message=f"Promotion decisions saved for {len(saved)} students")


@router.get(
    "/class/{class_id}",
    response_model=Envelope[List[PromotionRecordResponse]],
    dependencies=[Depends(get_current_user)],
)
async def list_class_promotions(
    class_id: UUID,
    session_id: Optional[UUID] = Query(None, alias="sessionId"),
    db: AsyncSession = Depends(get_db),
) -> Envelope[List[PromotionRecordResponse]]:
    try:
        records = await service.list_class_promotions(db, class_id, session_id=session_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Envelope(data=records)


@router.get(
    "/session/{session_id}",
    response_model=Envelope[List[PromotionRecordResponse]],
    dependencies=[Depends(get_current_user)],
)
async def list_session_promotions(
    session_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> Envelope[List[PromotionRecordResponse]]:
    try:
        records = await service.list_session_promotions(db, session_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Envelope(data=records)


@router.get(
    "/session/{session_id}/summary",
    response_model=Envelope[PromotionSummary],
    dependencies=[Depends(get_current_user)],
)
async def get_session_summary(
    session_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> Envelope[PromotionSummary]:
    try:
        summary = await service.get_session_summary(db, session_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Envelope(data=summary)


@router.post(
    "/execute",
    response_model=Envelope[PromotionExecutionResult],
)
async def execute_promotions(
    from_session_id: Optional[UUID] = Query(None, alias="fromSessionId"),
    to_session_id: Optional[UUID] = Query(None, alias="toSessionId"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin),
) -> Envelope[PromotionExecutionResult]:
    """
    Apply all pending promotions of the source session into the target session.
    Students move class, graduates leave, fees are regenerated; all or nothing.
    """
    try:
        result = await service.execute_promotions(
            db, from_session_id, to_session_id, changed_by=current_user.id
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Envelope(
        data=result,
        message=(
            f"Promotions executed: {result.promoted} promoted, "
            f"{result.graduated} graduated, {result.detained} detained"
        ),
    )
