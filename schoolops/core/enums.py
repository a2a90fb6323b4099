from enum import Enum


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    TEACHER = "TEACHER"


class StudentStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    GRADUATED = "GRADUATED"


class PromotionStatus(str, Enum):
    PENDING = "PENDING"
    PROMOTED = "PROMOTED"
    DETAINED = "DETAINED"
    GRADUATED = "GRADUATED"


class MonthlyFeeStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    # Never stored: derived from due_date at read time.
    OVERDUE = "OVERDUE"


class FeeStatusSummary(str, Enum):
    paid = "paid"
    pending = "pending"
    overdue = "overdue"


class ErrorKind(str, Enum):
    CONFLICT = "CONFLICT"
    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    UNKNOWN = "UNKNOWN"


MONTH_NAMES = (
    "JANUARY",
    "FEBRUARY",
    "MARCH",
    "APRIL",
    "MAY",
    "JUNE",
    "JULY",
    "AUGUST",
    "SEPTEMBER",
    "OCTOBER",
    "NOVEMBER",
    "DECEMBER",
)
