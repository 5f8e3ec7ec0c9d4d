import uuid
from enum import Enum
from sqlalchemy import (
    Column, String, Boolean, DateTime, Numeric, Uuid, ForeignKey,
    Enum as SQLEnum, Index
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from charity_hub.database.config.db import Base


class DonationStatus(str, Enum):
    """Donation status driven by the payment collaborators."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class Donation(Base):
    __tablename__ = "donations"

    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        unique=True,
        nullable=False,
    )
    profile_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("student_profiles.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    donor_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    amount = Column(Numeric(18, 2), nullable=False)
    payment_method = Column(String(50), nullable=False)
    transaction_id = Column(String(200), nullable=True)
    status = Column(
        SQLEnum(DonationStatus, name="donationstatus"),
        nullable=False,
        default=DonationStatus.PENDING,
        index=True,
    )
    is_recurring = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)

    profile = relationship("StudentProfile", back_populates="donations")
    donor = relationship("User", foreign_keys=[donor_id])

    __table_args__ = (
        Index('ix_donation_profile_status', 'profile_id', 'status'),
    )
