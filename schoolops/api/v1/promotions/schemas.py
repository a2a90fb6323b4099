from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from schoolops.core.enums import PromotionStatus


class PromotionAssignment(BaseModel):
    """One student's outcome. Exactly one of to_class_id, is_graduated, is_detained must be chosen."""

    student_pan: str = Field(..., min_length=1, max_length=50)
    to_class_id: Optional[UUID] = None
    is_graduated: bool = False
    is_detained: bool = False
    remarks: Optional[str] = None

    @model_validator(mode="after")
    def check_single_outcome(self) -> "PromotionAssignment":
        chosen = sum([self.to_class_id is not None, self.is_graduated, self.is_detained])
        if chosen != 1:
            raise ValueError(
                f"Student {self.student_pan}: choose exactly one of promote to a class, graduate or detain"
            )
        return self


class PromotionAssignRequest(BaseModel):
    class_id: UUID
    session_id: UUID
    assignments: List[PromotionAssignment] = Field(..., min_length=1)


class PromotionRecordResponse(BaseModel):
    id: UUID
    student_id: UUID
    student_pan: str
    student_name: str
    session_id: UUID
    from_class_name: str
    to_class_name: Optional[str] = None
    is_graduated: bool
    status: PromotionStatus
    remarks: Optional[str] = None
    to_session_id: Optional[UUID] = None
    executed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class PromotionSummary(BaseModel):
    """Pending counts for the execution dialog, plus counts of every record by status."""

    session_id: UUID
    promoted: int = 0
    graduated: int = 0
    detained: int = 0
    total: int = 0
    by_status: Dict[PromotionStatus, int] = Field(default_factory=dict)


class PromotionExecutionResult(BaseModel):
    from_session_id: UUID
    to_session_id: UUID
    processed: int
    promoted: int
    graduated: int
    detained: int
