import uuid
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from schoolops.db.session import Base


class ExamType(Base):
    """Exam type master (Unit Test 1, Half Yearly, Final)."""

    __tablename__ = "exam_types"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class ClassExam(Base):
    """Assignment of an exam type to a class with its marking scheme."""

    __tablename__ = "class_exams"
    __table_args__ = (
        UniqueConstraint("class_id", "exam_type_id", name="uq_class_exam_class_type"),
        CheckConstraint("max_marks > 0 AND passing_marks < max_marks", name="chk_class_exam_marks"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    class_id = Column(Uuid, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True)
    exam_type_id = Column(Uuid, ForeignKey("exam_types.id", ondelete="CASCADE"), nullable=False, index=True)
    max_marks = Column(Integer, nullable=False, default=100)
    passing_marks = Column(Integer, nullable=False, default=40)
    exam_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    exam_type = relationship("ExamType", lazy="joined")
    school_class = relationship("SchoolClass", lazy="joined")


class Score(Base):
    """Marks of one student in one subject of a class exam."""

    __tablename__ = "scores"
    __table_args__ = (
        UniqueConstraint("class_exam_id", "student_id", "subject", name="uq_score_exam_student_subject"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    class_exam_id = Column(Uuid, ForeignKey("class_exams.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Uuid, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    subject = Column(String(100), nullable=False)
    marks = Column(Numeric(6, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    student = relationship("Student", lazy="joined")
