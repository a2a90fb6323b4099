from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from schoolops.auth.dependencies import get_current_user
from schoolops.auth.rbac import require_admin
from schoolops.auth.schemas import CurrentUser
from schoolops.core.enums import StudentStatus
from schoolops.core.exceptions import ServiceError
from schoolops.core.schemas import Envelope
from schoolops.db.session import get_db

from .schemas import StudentCreate, StudentResponse, StudentUpdate
from . import service

router = APIRouter(prefix="/students", tags=["students"])


@router.post(
    "",
    response_model=Envelope[StudentResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_student(
    payload: StudentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin),
) -> Envelope[StudentResponse]:
    try:
        created = await service.create_student(db, payload, changed_by=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Envelope(data=created, message="Student registered successfully")


@router.get(
    "",
    response_model=Envelope[List[StudentResponse]],
    dependencies=[Depends(get_current_user)],
)
async def list_students(
    class_id: Optional[UUID] = Query(None, alias="classId"),
    status_filter: Optional[StudentStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
) -> Envelope[List[StudentResponse]]:
    return Envelope(data=await service.list_students(db, class_id=class_id, status_filter=status_filter))


@router.get(
    "/{pan_number}",
    response_model=Envelope[StudentResponse],
    dependencies=[Depends(get_current_user)],
)
async def get_student(pan_number: str, db: AsyncSession = Depends(get_db)) -> Envelope[StudentResponse]:
    s = await service.get_student(db, pan_number)
    if not s:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found")
    return Envelope(data=s)


@router.put(
    "/{pan_number}",
    response_model=Envelope[StudentResponse],
)
async def update_student(
    pan_number: str,
    payload: StudentUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin),
) -> Envelope[StudentResponse]:
    """Update student details. Changing class_id regenerates the fee schedule before returning."""
    try:
        updated = await service.update_student(db, pan_number, payload, changed_by=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Envelope(data=updated, message="Student information updated successfully")
