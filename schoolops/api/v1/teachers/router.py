from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from schoolops.auth.rbac import require_admin
from schoolops.core.exceptions import ServiceError
from schoolops.core.schemas import Envelope
from schoolops.db.session import get_db

from .schemas import TeacherCreate, TeacherResponse
from . import service

router = APIRouter(prefix="/teachers", tags=["teachers"])


@router.post(
    "",
    response_model=Envelope[TeacherResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_teacher(payload: TeacherCreate, db: AsyncSession = Depends(get_db)) -> Envelope[TeacherResponse]:
    try:
        created = await service.create_teacher(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Envelope(data=created, message="Teacher created successfully")


@router.get(
    "",
    response_model=Envelope[List[TeacherResponse]],
    dependencies=[Depends(require_admin)],
)
async def list_teachers(db: AsyncSession = Depends(get_db)) -> Envelope[List[TeacherResponse]]:
    return Envelope(data=await service.list_teachers(db))
