from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from schoolops.auth.dependencies import get_current_user
from schoolops.auth.rbac import require_admin, require_role
from schoolops.core.enums import UserRole
from schoolops.core.exceptions import ServiceError
from schoolops.core.schemas import Envelope
from schoolops.db.session import get_db

from .schemas import (
    ClassExamAssign,
    ClassExamResponse,
    ExamTypeCreate,
    ExamTypeResponse,
    MarksUpload,
    ScoreResponse,
)
from . import service

exam_types_router = APIRouter(prefix="/exam-types", tags=["exams"])
class_exams_router = APIRouter(prefix="/class-exams", tags=["exams"])
marks_router = APIRouter(prefix="/marks", tags=["exams"])


@exam_types_router.post(
    "",
    response_model=Envelope[ExamTypeResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_exam_type(payload: ExamTypeCreate, db: AsyncSession = Depends(get_db)) -> Envelope[ExamTypeResponse]:
    try:
        created = await service.create_exam_type(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Envelope(data=created, message="Exam type created successfully")


@exam_types_router.get(
    "",
    response_model=Envelope[List[ExamTypeResponse]],
    dependencies=[Depends(get_current_user)],
)
async def list_exam_types(db: AsyncSession = Depends(get_db)) -> Envelope[List[ExamTypeResponse]]:
    return Envelope(data=await service.list_exam_types(db))


@class_exams_router.put(
    "/exam-type/{exam_type_id}",
    response_model=Envelope[List[ClassExamResponse]],
    dependencies=[Depends(require_admin)],
)
async def replace_class_exams(
    exam_type_id: UUID,
    payload: ClassExamAssign,
    db: AsyncSession = Depends(get_db),
) -> Envelope[List[ClassExamResponse]]:
    """Replace the classes assigned to an exam type in one step."""
    try:
        assigned = await service.replace_class_exams(db, exam_type_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Envelope(data=assigned, message="Exam assigned to classes successfully")


@class_exams_router.get(
    "/exam-type/{exam_type_id}",
    response_model=Envelope[List[ClassExamResponse]],
    dependencies=[Depends(get_current_user)],
)
async def list_class_exams_for_type(
    exam_type_id: UUID, db: AsyncSession = Depends(get_db)
) -> Envelope[List[ClassExamResponse]]:
    return Envelope(data=await service.list_class_exams_for_type(db, exam_type_id))


@class_exams_router.get(
    "/class/{class_id}",
    response_model=Envelope[List[ClassExamResponse]],
    dependencies=[Depends(get_current_user)],
)
async def list_class_exams_for_class(
    class_id: UUID, db: AsyncSession = Depends(get_db)
) -> Envelope[List[ClassExamResponse]]:
    return Envelope(data=await service.list_class_exams_for_class(db, class_id))


@marks_router.post(
    "",
    response_model=Envelope[List[ScoreResponse]],
    dependencies=[Depends(require_role(UserRole.ADMIN, UserRole.TEACHER))],
)
async def upload_marks(payload: MarksUpload, db: AsyncSession = Depends(get_db)) -> Envelope[List[ScoreResponse]]:
    try:
        scores = await service.upload_marks(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Envelope(data=scores, message="Marks saved successfully")


@marks_router.get(
    "/class-exam/{class_exam_id}",
    response_model=Envelope[List[ScoreResponse]],
    dependencies=[Depends(get_current_user)],
)
async def list_marks(
    class_exam_id: UUID,
    subject: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> Envelope[List[ScoreResponse]]:
    try:
        scores = await service.list_marks(db, class_exam_id, subject=subject)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Envelope(data=scores)
