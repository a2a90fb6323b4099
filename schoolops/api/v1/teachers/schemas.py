from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class TeacherCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr


class TeacherResponse(BaseModel):
    id: UUID
    name: str
    email: str
    created_at: datetime

    class Config:
        from_attributes = True
