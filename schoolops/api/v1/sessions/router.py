from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from schoolops.auth.dependencies import get_current_user
from schoolops.auth.rbac import require_admin
from schoolops.core.exceptions import ServiceError
from schoolops.core.schemas import Envelope
from schoolops.db.session import get_db

from .schemas import SessionCreate, SessionResponse, SessionUpdate
from . import service

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.get(
    "",
    response_model=Envelope[List[SessionResponse]],
    dependencies=[Depends(get_current_user)],
)
async def list_sessions(db: AsyncSession = Depends(get_db)) -> Envelope[List[SessionResponse]]:
    """List all sessions, newest first."""
    return Envelope(data=await service.list_sessions(db))


@router.get(
    "/active",
    response_model=Envelope[Optional[SessionResponse]],
    dependencies=[Depends(get_current_user)],
)
async def get_active_session(db: AsyncSession = Depends(get_db)) -> Envelope[Optional[SessionResponse]]:
    return Envelope(data=await service.get_active_session(db))


@router.get(
    "/{session_id}",
    response_model=Envelope[SessionResponse],
    dependencies=[Depends(get_current_user)],
)
async def get_session(session_id: UUID, db: AsyncSession = Depends(get_db)) -> Envelope[SessionResponse]:
    s = await service.get_session(db, session_id)
    if not s:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    return Envelope(data=s)


@router.post(
    "",
    response_model=Envelope[SessionResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_session(payload: SessionCreate, db: AsyncSession = Depends(get_db)) -> Envelope[SessionResponse]:
    try:
        created = await service.create_session(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Envelope(data=created, message="Session created successfully")


@router.put(
    "/{session_id}",
    response_model=Envelope[SessionResponse],
    dependencies=[Depends(require_admin)],
)
async def update_session(
    session_id: UUID,
    payload: SessionUpdate,
    db: AsyncSession = Depends(get_db),
) -> Envelope[SessionResponse]:
    try:
        updated = await service.update_session(db, session_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Envelope(data=updated, message="Session updated successfully")


@router.put(
    "/{session_id}/activate",
    response_model=Envelope[SessionResponse],
    dependencies=[Depends(require_admin)],
)
async def activate_session(session_id: UUID, db: AsyncSession = Depends(get_db)) -> Envelope[SessionResponse]:
    """Set the active session. All others become inactive."""
    try:
        activated = await service.activate_session(db, session_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Envelope(data=activated, message="Session activated")


@router.delete(
    "/{session_id}",
    response_model=Envelope[None],
    dependencies=[Depends(require_admin)],
)
async def delete_session(session_id: UUID, db: AsyncSession = Depends(get_db)) -> Envelope[None]:
    try:
        await service.delete_session(db, session_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Envelope(message="Session deleted successfully")
