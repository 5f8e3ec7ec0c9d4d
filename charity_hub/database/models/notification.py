import uuid
from sqlalchemy import Column, String, Boolean, DateTime, Text, Uuid, ForeignKey, Index
from sqlalchemy.sql import func

from charity_hub.database.config.db import Base


class Notification(Base):
    """In-app notification shown to a user."""
    __tablename__ = "notifications"

    id = Column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False
    )
    user_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    severity = Column(String(20), nullable=False, default="info")
    link_url = Column(String(500), nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index('ix_notification_user_read', 'user_id', 'is_read'),
    )
