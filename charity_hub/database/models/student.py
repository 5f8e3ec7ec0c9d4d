import uuid
from sqlalchemy import (
    Column, String, Boolean, DateTime, Integer, Numeric, Uuid, ForeignKey, Index
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from charity_hub.database.config.db import Base


class StudentProfile(Base):
    """Public funding profile of a student. Created only by posting an approved application."""
    __tablename__ = "student_profiles"

    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        unique=True,
        nullable=False,
    )
    # One profile per user
    user_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    # Application this profile was posted from (no FK: student_applications already points here)
    source_application_id = Column(Uuid(as_uuid=True), unique=True, nullable=False)

    # ==================== PUBLIC DATA ====================
    full_name = Column(String(200), nullable=False)
    age = Column(Integer, nullable=False)
    location = Column(String(500), nullable=False)
    story = Column(String(2000), nullable=False)
    academic_background = Column(String(500), nullable=True)
    dream_career = Column(String(200), nullable=True)
    photo_url = Column(String(500), nullable=True)

    # ==================== FUNDING ====================
    funding_goal = Column(Numeric(18, 2), nullable=False)
    amount_raised = Column(Numeric(18, 2), nullable=False, default=0)
    is_visible = Column(Boolean, nullable=False, default=True)

    # ==================== METADATA ====================
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # ==================== RELATIONSHIPS ====================
    user = relationship("User", foreign_keys=[user_id])
    donations = relationship("Donation", back_populates="profile", passive_deletes="all")

    __table_args__ = (
        Index('ix_student_profile_visible', 'is_visible'),
    )
