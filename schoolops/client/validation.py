"""Checks run before a request is sent. Each raises LocalValidationError."""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, Union
from uuid import UUID

from .errors import LocalValidationError

Number = Union[int, float, Decimal, str]


def validate_session_pair(from_session_id: Optional[Any], to_session_id: Optional[Any]) -> None:
    if not from_session_id or not to_session_id:
        raise LocalValidationError("Please select both source and target sessions")
    if str(from_session_id) == str(to_session_id):
        raise LocalValidationError("Source and target sessions must be different")


def validate_marks(value: Number, max_marks: Number) -> Decimal:
    """Return the marks as a Decimal when 0 <= value <= max_marks."""
    try:
        marks = Decimal(str(value))
        limit = Decimal(str(max_marks))
    except InvalidOperation:
        raise LocalValidationError(f"Marks must be a number, got {value!r}")
    if marks < 0 or marks > limit:
        raise LocalValidationError(f"Marks must be between 0 and {max_marks}")
    return marks


def validate_class_exam(max_marks: int, passing_marks: int) -> None:
    if max_marks <= 0:
        raise LocalValidationError("Maximum marks must be greater than zero")
    if passing_marks < 0:
        raise LocalValidationError("Passing marks cannot be negative")
    if passing_marks >= max_marks:
        raise LocalValidationError("Passing marks must be less than maximum marks")


@dataclass(frozen=True)
class PromotionChoice:
    """One student's promotion outcome: promote to a class, graduate, or detain."""

    student_pan: str
    to_class_id: Optional[UUID] = None
    is_graduated: bool = False
    is_detained: bool = False
    remarks: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.student_pan:
            raise LocalValidationError("Student PAN is required")
        if self.is_graduated and self.to_class_id is not None:
            raise LocalValidationError(f"Student {self.student_pan}: a graduating student cannot have a target class")
        chosen = sum([self.to_class_id is not None, self.is_graduated, self.is_detained])
        if chosen != 1:
            raise LocalValidationError(
                f"Student {self.student_pan}: choose exactly one of promote, graduate or detain"
            )

    @classmethod
    def promote(cls, student_pan: str, to_class_id: UUID, remarks: Optional[str] = None) -> "PromotionChoice":
        return cls(student_pan, to_class_id=to_class_id, remarks=remarks)

    @classmethod
    def graduate(cls, student_pan: str, remarks: Optional[str] = None) -> "PromotionChoice":
        return cls(student_pan, is_graduated=True, remarks=remarks)

    @classmethod
    def detain(cls, student_pan: str, remarks: Optional[str] = None) -> "PromotionChoice":
        return cls(student_pan, is_detained=True, remarks=remarks)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "student_pan": self.student_pan,
            "to_class_id": str(self.to_class_id) if self.to_class_id is not None else None,
            "is_graduated": self.is_graduated,
            "is_detained": self.is_detained,
            "remarks": self.remarks,
        }
