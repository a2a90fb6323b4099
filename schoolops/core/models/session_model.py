"""Academic session (year/term). Named AcademicSession to avoid clashing with the DB session."""
import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, String, Uuid

from schoolops.db.session import Base


class AcademicSession(Base):
    """
    Academic session, e.g. "2024-2025". Only one session can be active at a time.
    The active session cannot be deleted; sessions referenced by classes,
    promotions or fees cannot be deleted either.
    """

    __tablename__ = "sessions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(50), nullable=False, unique=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    active = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
