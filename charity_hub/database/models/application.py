import uuid
from sqlalchemy import (
    Column, String, Boolean, DateTime, Text, Integer, Numeric, JSON, Uuid,
    ForeignKey, Enum as SQLEnum, Index
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func, text
from enum import Enum

from charity_hub.database.config.db import Base


# ==================== ENUMS ====================

class ApplicationStatus(str, Enum):
    """Application status throughout the review process."""
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    INCOMPLETE = "incomplete"
    APPROVED = "approved"
    REJECTED = "rejected"


# Statuses that keep a user from submitting another application. Enum columns
# store member names.
ACTIVE_STATUS_CLAUSE = "status IN ('PENDING', 'UNDER_REVIEW', 'INCOMPLETE', 'APPROVED')"


# ==================== MODELS ====================

class StudentApplication(Base):
    """A student's funding application."""
    __tablename__ = "student_applications"

    # Primary Key
    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        unique=True,
        nullable=False,
    )

    # ==================== OWNER ====================
    user_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # ==================== PERSONAL INFORMATION ====================
    full_name = Column(String(200), nullable=False)
    age = Column(Integer, nullable=False)
    place_of_birth = Column(String(200), nullable=False)
    current_residency = Column(String(500), nullable=False)
    email = Column(String(200), nullable=False)
    phone_number = Column(String(20), nullable=True)

    # ==================== FAMILY INFORMATION ====================
    father_name = Column(String(200), nullable=False)
    mother_name = Column(String(200), nullable=False)
    parents_annual_salary = Column(Numeric(18, 2), nullable=False)
    family_situation = Column(String(1000), nullable=True)

    # ==================== ACADEMIC INFORMATION ====================
    personal_story = Column(String(2000), nullable=False)
    academic_background = Column(String(1000), nullable=False)
    current_education_level = Column(String(200), nullable=True)
    field_of_study = Column(String(200), nullable=True)
    dream_career = Column(String(200), nullable=True)

    # ==================== DOCUMENTS (opaque URLs) ====================
    profile_image_url = Column(String(500), nullable=True)
    proof_document_urls = Column(JSON, nullable=True)
    gallery_image_urls = Column(JSON, nullable=True)

    # ==================== FUNDING ====================
    requested_funding_amount = Column(Numeric(18, 2), nullable=False)
    funding_purpose = Column(String(1000), nullable=True)

    # ==================== STATUS & REVIEW TRAIL ====================
    status = Column(
        SQLEnum(ApplicationStatus, name="applicationstatus"),
        nullable=False,
        default=ApplicationStatus.PENDING,
        index=True,
    )
    rejection_reason = Column(Text, nullable=True)

    reviewed_by_manager_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    reviewed_by_manager_at = Column(DateTime(timezone=True), nullable=True)
    approved_by_admin_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    approved_by_admin_at = Column(DateTime(timezone=True), nullable=True)

    # ==================== PUBLICATION LINK ====================
    is_posted = Column(Boolean, default=False, nullable=False)
    profile_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("student_profiles.id", ondelete="RESTRICT"),
        unique=True,
        nullable=True,
    )

    # ==================== IMPORTANT DATES ====================
    submitted_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    # Optimistic concurrency token
    version = Column(Integer, nullable=False)

    # ==================== RELATIONSHIPS ====================
    user = relationship("User", foreign_keys=[user_id])
    reviewed_by_manager = relationship("User", foreign_keys=[reviewed_by_manager_id])
    approved_by_admin = relationship("User", foreign_keys=[approved_by_admin_id])
    profile = relationship("StudentProfile", foreign_keys=[profile_id])
    status_history = relationship(
        "ApplicationStatusHistory",
        back_populates="application",
        cascade="all, delete-orphan",
        order_by="ApplicationStatusHistory.created_at",
    )

    # ==================== INDEXES ====================
    __table_args__ = (
        Index('ix_student_application_user_status', 'user_id', 'status'),
        Index('ix_student_application_status_submitted', 'status', 'submitted_at'),
        # At most one active application per user
        Index(
            "uq_student_application_active_user",
            "user_id",
            unique=True,
            postgresql_where=text(ACTIVE_STATUS_CLAUSE),
            sqlite_where=text(ACTIVE_STATUS_CLAUSE),
        ),
    )

    __mapper_args__ = {"version_id_col": version}


class ApplicationStatusHistory(Base):
    """Audit trail for application status changes."""
    __tablename__ = "application_status_history"

    # Primary Key
    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        unique=True,
        nullable=False,
    )

    application_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("student_applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # ==================== STATUS CHANGE ====================
    action = Column(String(50), nullable=False)
    from_status = Column(
        SQLEnum(ApplicationStatus, name="applicationstatus"),
        nullable=True,  # Null for first entry
    )
    to_status = Column(
        SQLEnum(ApplicationStatus, name="applicationstatus"),
        nullable=False,
    )
    notes = Column(Text, nullable=True)

    # ==================== CHANGED BY ====================
    changed_by = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    # ==================== METADATA ====================
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # ==================== RELATIONSHIPS ====================
    application = relationship("StudentApplication", back_populates="status_history")
    changer = relationship("User", foreign_keys=[changed_by])

    # ==================== INDEXES ====================
    __table_args__ = (
        Index('ix_status_history_application_created', 'application_id', 'created_at'),
    )
