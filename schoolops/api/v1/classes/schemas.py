from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ClassCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50, description="Display name, e.g. 5-A")
    session_id: UUID
    class_teacher_id: Optional[UUID] = None


class ClassUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    class_teacher_id: Optional[UUID] = None


class ClassResponse(BaseModel):
    id: UUID
    name: str
    session_id: UUID
    session_name: Optional[str] = None
    class_teacher_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime
