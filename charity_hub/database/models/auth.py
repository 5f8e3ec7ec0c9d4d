import uuid
import enum
from sqlalchemy import (
    Column, String, Boolean, DateTime, ForeignKey, Enum, JSON, Uuid,
    Index, UniqueConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from charity_hub.database.config.db import Base


class UserRole(str, enum.Enum):
    """User role enumeration."""

    ADMIN = "admin"
    MANAGER = "manager"
    DONOR = "donor"
    STUDENT = "student"


class User(Base):
    __tablename__ = "users"

    id = Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        unique=True,
        nullable=False,
    )
    email = Column(String(255), unique=True, index=True, nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    password_hash = Column(String, nullable=True)  # null for guest donors
    verified = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    is_guest = Column(Boolean, default=False, nullable=False)
    role = Column(
        Enum(*[e.value for e in UserRole], name="user_role"),
        nullable=False,
        default=UserRole.STUDENT.value,
        index=True,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    permissions = relationship(
        "UserPermission", back_populates="user", cascade="all, delete-orphan"
    )

    @property
    def full_name(self) -> str:
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) or self.email


class UserPermission(Base):
    """Explicit permission claim granted to a user on top of the role defaults."""
    __tablename__ = "user_permissions"

    id = Column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False
    )
    user_id = Column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    permission = Column(String(100), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="permissions")

    __table_args__ = (
        UniqueConstraint("user_id", "permission", name="uq_user_permission"),
        Index("ix_user_permissions_user", "user_id"),
    )


class PermissionAuditLog(Base):
    """Append-only record of permission claim changes."""
    __tablename__ = "permission_audit_logs"

    id = Column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False
    )
    actor_id = Column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
    target_user_id = Column(
        Uuid(as_uuid=True), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
    added = Column(JSON, nullable=False, default=list)
    removed = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)

    __table_args__ = (
        Index("ix_permission_audit_actor_target", "actor_id", "target_user_id", "created_at"),
    )
