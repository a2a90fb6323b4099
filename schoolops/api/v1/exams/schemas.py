from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


# --- Exam types ---
class ExamTypeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


class ExamTypeResponse(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


# --- Class exams ---
class ClassExamAssign(BaseModel):
    """Full set of classes taking an exam type. Classes not listed are unassigned."""

    class_ids: List[UUID] = Field(default_factory=list)
    max_marks: int = Field(100, gt=0)
    passing_marks: int = Field(40, ge=0)
    exam_date: Optional[date] = None

    @model_validator(mode="after")
    def check_passing_below_max(self) -> "ClassExamAssign":
        if self.passing_marks >= self.max_marks:
            raise ValueError("Passing marks must be less than maximum marks")
        return self


class ClassExamResponse(BaseModel):
    id: UUID
    class_id: UUID
    class_name: str
    exam_type_id: UUID
    exam_type_name: str
    max_marks: int
    passing_marks: int
    exam_date: Optional[date] = None


# --- Marks ---
class MarkEntry(BaseModel):
    student_pan: str = Field(..., min_length=1, max_length=50)
    marks: Decimal


class MarksUpload(BaseModel):
    class_exam_id: UUID
    subject: str = Field(..., min_length=1, max_length=100)
    marks: List[MarkEntry] = Field(..., min_length=1)


class ScoreResponse(BaseModel):
    id: UUID
    student_pan: str
    student_name: str
    subject: str
    marks: Decimal
    max_marks: int
    percentage: Decimal
    grade: str
    passed: bool
