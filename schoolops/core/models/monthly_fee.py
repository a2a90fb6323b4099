"""Monthly fee: one row per student per session month. OVERDUE is derived, never stored."""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint, Uuid

from schoolops.db.session import Base


class MonthlyFee(Base):
    """Entry of a student's fee catalog. The set for (student, session) always comes from one class."""

    __tablename__ = "monthly_fees"
    __table_args__ = (
        UniqueConstraint("student_id", "session_id", "month", "year", name="uq_monthly_fee_student_month"),
        CheckConstraint("status IN ('PENDING','PAID')", name="chk_monthly_fee_status"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    session_id = Column(Uuid, ForeignKey("sessions.id", ondelete="RESTRICT"), nullable=False)
    class_id = Column(Uuid, ForeignKey("classes.id", ondelete="RESTRICT"), nullable=False)
    month = Column(String(12), nullable=False)  # APRIL, MAY, ...
    year = Column(Integer, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    due_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default="PENDING")
    payment_date = Column(Date, nullable=True)
    receipt_number = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
