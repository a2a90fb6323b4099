from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from schoolops.auth.dependencies import get_current_user
from schoolops.auth.rbac import require_admin
from schoolops.core.exceptions import ServiceError
from schoolops.core.schemas import Envelope
from schoolops.db.session import get_db

from .schemas import ClassCreate, ClassResponse, ClassUpdate
from . import service

router = APIRouter(prefix="/classes", tags=["classes"])


@router.post(
    "",
    response_model=Envelope[ClassResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_class(payload: ClassCreate, db: AsyncSession = Depends(get_db)) -> Envelope[ClassResponse]:
    try:
        created = await service.create_class(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Envelope(data=created, message="Class created successfully")


@router.get(
    "",
    response_model=Envelope[List[ClassResponse]],
    dependencies=[Depends(get_current_user)],
)
async def list_classes(
    session_id: Optional[UUID] = Query(None, alias="sessionId"),
    db: AsyncSession = Depends(get_db),
) -> Envelope[List[ClassResponse]]:
    return Envelope(data=await service.list_classes(db, session_id=session_id))


@router.get(
    "/{class_id}",
    response_model=Envelope[ClassResponse],
    dependencies=[Depends(get_current_user)],
)
async def get_class(class_id: UUID, db: AsyncSession = Depends(get_db)) -> Envelope[ClassResponse]:
    obj = await service.get_class(db, class_id)
    if not obj:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")
    return Envelope(data=obj)


@router.put(
    "/{class_id}",
    response_model=Envelope[ClassResponse],
    dependencies=[Depends(require_admin)],
)
async def update_class(
    class_id: UUID,
    payload: ClassUpdate,
    db: AsyncSession = Depends(get_db),
) -> Envelope[ClassResponse]:
    try:
        updated = await service.update_class(db, class_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Envelope(data=updated, message="Class updated successfully")


@router.delete(
    "/{class_id}",
    response_model=Envelope[None],
    dependencies=[Depends(require_admin)],
)
async def delete_class(class_id: UUID, db: AsyncSession = Depends(get_db)) -> Envelope[None]:
    try:
        await service.delete_class(db, class_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Envelope(message="Class deleted successfully")
