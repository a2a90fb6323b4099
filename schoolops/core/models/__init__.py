from schoolops.core.models.session_model import AcademicSession
from schoolops.core.models.teacher import Teacher
from schoolops.core.models.class_model import SchoolClass
from schoolops.core.models.class_fee_structure import ClassFeeStructure
from schoolops.core.models.student import Student
from schoolops.core.models.promotion_record import PromotionRecord
from schoolops.core.models.monthly_fee import MonthlyFee
from schoolops.core.models.fee_audit_log import FeeAuditLog
from schoolops.core.models.exam import ClassExam, ExamType, Score

__all__ = [
    "AcademicSession",
    "Teacher",
    "SchoolClass",
    "ClassFeeStructure",
    "Student",
    "PromotionRecord",
    "MonthlyFee",
    "FeeAuditLog",
    "ExamType",
    "ClassExam",
    "Score",
]
