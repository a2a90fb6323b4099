"""Session-scoped classes (e.g. 5-A, 6-A). Model named SchoolClass to avoid Python 'class' keyword."""
import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from schoolops.db.session import Base


class SchoolClass(Base):
    """A class belongs to exactly one session; its name is unique within that session."""

    __tablename__ = "classes"
    __table_args__ = (
        UniqueConstraint("session_id", "name", name="uq_class_session_name"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(50), nullable=False)
    session_id = Column(Uuid, ForeignKey("sessions.id", ondelete="RESTRICT"), nullable=False)
    class_teacher_id = Column(Uuid, ForeignKey("teachers.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    session = relationship("AcademicSession", lazy="joined")
    class_teacher = relationship("Teacher")
