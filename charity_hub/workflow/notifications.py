"""
Notification contract consumed by the review workflow.

The workflow only talks to ``NotificationService``; ``SafeNotifier`` wraps it
so delivery problems are logged and never reach the caller of a transition.
"""
import asyncio
import logging
from typing import Callable, Optional
from uuid import UUID

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from charity_hub.database.config.db import SessionLocal
from charity_hub.database.models.notification import Notification
from charity_hub.utils.smtp import mail_configured, send_mail

logger = logging.getLogger(__name__)

SEVERITY_INFO = "info"
SEVERITY_SUCCESS = "success"
SEVERITY_WARNING = "warning"
SEVERITY_ERROR = "error"


class NotificationService:
    """Outbound notification contract."""

    def notify(
        self,
        user_id: UUID,
        title: str,
        message: str,
        severity: str = SEVERITY_INFO,
        link: Optional[str] = None,
    ) -> None:
        raise NotImplementedError

    def notify_email(self, address: str, subject: str, body: str) -> None:
        raise NotImplementedError


class DefaultNotificationService(NotificationService):
    """
    Stores in-app notifications in their own session and sends email through
    fastapi-mail. When a request is in flight, email is handed to its
    BackgroundTasks so the response does not wait on SMTP.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        background_tasks: Optional[BackgroundTasks] = None,
    ):
        self.session_factory = session_factory
        self.background_tasks = background_tasks

    def notify(self, user_id, title, message, severity=SEVERITY_INFO, link=None):
        db = self.session_factory()
        try:
            db.add(
                Notification(
                    user_id=user_id,
                    title=title,
                    message=message,
                    severity=severity,
                    link_url=link,
                )
            )
            db.commit()
        finally:
            db.close()

    def notify_email(self, address, subject, body):
        if not mail_configured():
            logger.warning("SMTP is not configured. Email not sent to %s", address)
            return
        if self.background_tasks is not None:
            self.background_tasks.add_task(send_mail, address, subject, body)
        else:
            asyncio.run(send_mail(address, subject, body))


class SafeNotifier(NotificationService):
    """Delegates to another NotificationService, logging and suppressing failures."""

    def __init__(self, inner: NotificationService):
        self.inner = inner

    def notify(self, user_id, title, message, severity=SEVERITY_INFO, link=None):
        try:
            self.inner.notify(user_id, title, message, severity, link)
        except Exception:
            logger.exception("Failed to deliver notification %r to user %s", title, user_id)

    def notify_email(self, address, subject, body):
        try:
            self.inner.notify_email(address, subject, body)
        except Exception:
            logger.exception("Failed to send email %r to %s", subject, address)


def get_notification_service(background_tasks: BackgroundTasks) -> NotificationService:
    """FastAPI dependency."""
    return DefaultNotificationService(background_tasks=background_tasks)
