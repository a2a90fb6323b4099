import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import relationship

from schoolops.db.session import Base


class Student(Base):
    """
    Student enrolment. A student belongs to at most one class at a time and the class
    determines the applicable fee schedule. session_id tracks the session of the current
    (or, for graduates, the last) enrolment so the fee catalog stays reachable.
    """

    __tablename__ = "students"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    pan_number = Column(String(50), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False)
    class_id = Column(Uuid, ForeignKey("classes.id", ondelete="SET NULL"), nullable=True)
    session_id = Column(Uuid, ForeignKey("sessions.id", ondelete="RESTRICT"), nullable=True)
    section = Column(String(20), nullable=True)
    roll_number = Column(Integer, nullable=True)
    status = Column(String(20), nullable=False, default="ACTIVE")  # ACTIVE | INACTIVE | GRADUATED
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    school_class = relationship("SchoolClass", foreign_keys=[class_id], lazy="joined")
