from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class SessionCreate(BaseModel):
    """Create session. name must be unique."""

    name: str = Field(..., min_length=1, max_length=50, description="e.g. 2025-2026")
    start_date: date = Field(..., description="Session start date")
    end_date: date = Field(..., description="Session end date (must be after start_date)")
    active: bool = Field(False, description="Make this the active session; all others become inactive.")


class SessionUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class SessionResponse(BaseModel):
    id: UUID
    name: str
    start_date: date
    end_date: date
    active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
