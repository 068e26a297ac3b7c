"""
Cut Instruction Model
"""
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, Integer, Numeric
from sqlalchemy.orm import relationship
from datetime import datetime
from meatmath.database import Base
import uuid


DIFFICULTIES = ("easy", "medium", "hard")


class CutInstruction(Base):
    __tablename__ = "cut_instructions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    organization_id = Column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=False)
    instructions = Column(Text, nullable=False)
    estimated_yield = Column(Numeric(5, 4), nullable=True)
    processing_time = Column(Integer, nullable=True)  # minutes
    difficulty = Column(String(20), nullable=False, default="medium")
    is_template = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    organization = relationship("Organization", back_populates="cut_instructions")

    def __repr__(self):
        return f"<CutInstruction {self.name} (organization={self.organization_id})>"
