from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from schoolops.core.enums import FeeStatusSummary, StudentStatus


class StudentCreate(BaseModel):
    """Admission. When class_id is given the monthly fee schedule is generated in the same transaction."""

    pan_number: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    class_id: Optional[UUID] = None
    section: Optional[str] = Field(None, max_length=20)
    roll_number: Optional[int] = Field(None, ge=1)


class StudentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    class_id: Optional[UUID] = None
    section: Optional[str] = Field(None, max_length=20)
    roll_number: Optional[int] = Field(None, ge=1)
    status: Optional[StudentStatus] = None


class StudentResponse(BaseModel):
    id: UUID
    pan_number: str
    name: str
    class_id: Optional[UUID] = None
    class_name: Optional[str] = None
    session_id: Optional[UUID] = None
    section: Optional[str] = None
    roll_number: Optional[int] = None
    status: StudentStatus
    fee_status: Optional[FeeStatusSummary] = None
    created_at: datetime
    updated_at: datetime
