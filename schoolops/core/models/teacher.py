import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String, Uuid

from schoolops.db.session import Base


class Teacher(Base):
    """Teaching staff member. Referenced as class teacher by SchoolClass."""

    __tablename__ = "teachers"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
