import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from schoolops.db.session import Base


class PromotionRecord(Base):
    """
    Per-student promotion decision for a session transition. session_id is the SOURCE session.
    One record per (student, source session): PENDING until an execution pass claims it,
    then PROMOTED / DETAINED / GRADUATED. Records are never deleted.
    """

    __tablename__ = "promotion_records"
    __table_args__ = (
        UniqueConstraint("student_id", "session_id", name="uq_promotion_student_session"),
        CheckConstraint(
            "NOT (is_graduated AND to_class_name IS NOT NULL)",
            name="chk_promotion_graduated_no_target",
        ),
        CheckConstraint(
            "status IN ('PENDING','PROMOTED','DETAINED','GRADUATED')",
            name="chk_promotion_status",
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid, ForeignKey("students.id", ondelete="RESTRICT"), nullable=False)
    session_id = Column(Uuid, ForeignKey("sessions.id", ondelete="RESTRICT"), nullable=False, index=True)
    from_class_name = Column(String(50), nullable=False)
    to_class_name = Column(String(50), nullable=True)
    is_graduated = Column(Boolean, nullable=False, default=False)
    status = Column(String(20), nullable=False, default="PENDING")
    remarks = Column(Text, nullable=True)
    to_session_id = Column(Uuid, ForeignKey("sessions.id", ondelete="RESTRICT"), nullable=True)
    executed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    student = relationship("Student", lazy="joined")
