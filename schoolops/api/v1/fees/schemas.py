"""Fees schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from schoolops.core.enums import MONTH_NAMES, FeeStatusSummary, MonthlyFeeStatus


# --- Class Fee Structure ---
class ClassFeeStructureCreate(BaseModel):
    class_id: UUID
    component_name: str = Field(..., min_length=1, max_length=100)
    amount: Decimal = Field(..., ge=0, description="Monthly amount for this component")


class ClassFeeStructureResponse(BaseModel):
    id: UUID
    class_id: UUID
    component_name: str
    amount: Decimal
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ClassFeeStructureSummary(BaseModel):
    class_id: UUID
    class_name: str
    monthly_amount: Decimal
    items: List[ClassFeeStructureResponse]


# --- Monthly fees / catalog ---
class MonthlyFeeResponse(BaseModel):
    id: UUID
    class_id: UUID
    month: str
    year: int
    amount: Decimal
    due_date: date
    status: MonthlyFeeStatus
    payment_date: Optional[date] = None
    receipt_number: Optional[str] = None


class FeeCatalogResponse(BaseModel):
    """Aggregate view over a student's monthly fees for the current session. Recomputed on every fetch."""

    student_pan: str
    student_name: str
    class_id: Optional[UUID] = None
    class_name: Optional[str] = None
    session_id: Optional[UUID] = None
    monthly_fees: List[MonthlyFeeResponse]
    total_amount: Decimal
    total_paid: Decimal
    total_pending: Decimal
    total_overdue: Decimal
    fee_status: FeeStatusSummary


# --- Payment ---
class FeePaymentCreate(BaseModel):
    student_pan: str = Field(..., min_length=1)
    month: str
    year: Optional[int] = None
    amount: Decimal = Field(..., gt=0)
    session_id: Optional[UUID] = None
    class_id: Optional[UUID] = None
    receipt_number: Optional[str] = Field(None, max_length=50, description="Generated when empty")

    @field_validator("month")
    @classmethod
    def normalize_month(cls, v: str) -> str:
        month = v.strip().upper()
        if month not in MONTH_NAMES:
            raise ValueError(f"Invalid month: {v}")
        return month
