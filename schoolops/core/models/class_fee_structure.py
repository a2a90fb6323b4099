"""Class fee structure: monthly fee components per class."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Numeric, String, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from schoolops.db.session import Base


class ClassFeeStructure(Base):
    """Monthly fee component of a class. The class's monthly rate is the sum of its active components."""

    __tablename__ = "class_fee_structures"
    __table_args__ = (
        UniqueConstraint("class_id", "component_name", name="uq_class_fee_structure_class_component"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    class_id = Column(Uuid, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True)
    component_name = Column(String(100), nullable=False)  # Tuition, Transport, ...
    amount = Column(Numeric(12, 2), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    school_class = relationship("SchoolClass")
