"""
Review workflow for student applications.

Each public method is one transition: load the application, check the
actor's capability, check the transition table, mutate, record history and
commit. Notifications are fanned out only after the commit succeeded.
"""
import logging
from typing import List, Optional, Union
from uuid import UUID

from fastapi import Depends
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from charity_hub.authorization.catalog import Students
from charity_hub.authorization.evaluator import ensure_permission, has_permission
from charity_hub.database.config.db import get_db
from charity_hub.database.models.application import ApplicationStatus, StudentApplication
from charity_hub.database.models.auth import User, UserRole
from charity_hub.errors import InvalidTransition, NotFound, Unauthorized, ValidationFailed
from charity_hub.schema.application import ApplicationSubmit, PostProfileRequest
from charity_hub.workflow import posting
from charity_hub.workflow.engine import (
    BLOCKING_STATUSES,
    TRANSITIONS,
    WorkflowAction,
    check_transition,
    commit_transition,
    load_application,
    record_transition,
    utcnow,
)
from charity_hub.workflow.handlers import TransitionContext, dispatch
from charity_hub.workflow.notifications import (
    DefaultNotificationService,
    NotificationService,
    get_notification_service,
)

logger = logging.getLogger(__name__)

ApplicationPayload = Union[ApplicationSubmit, dict]


def validate_payload(payload: ApplicationPayload) -> ApplicationSubmit:
    """Coerce a raw payload into ApplicationSubmit, raising ValidationFailed."""
    if isinstance(payload, ApplicationSubmit):
        return payload
    try:
        return ApplicationSubmit.model_validate(payload)
    except ValidationError as exc:
        raise ValidationFailed(
            "Application data is invalid",
            exc.errors(include_url=False, include_context=False, include_input=False),
        ) from exc


def _apply_payload(application: StudentApplication, payload: ApplicationSubmit) -> None:
    for field, value in payload.model_dump().items():
        setattr(application, field, value)


def _clean_reason(reason: Optional[str]) -> Optional[str]:
    if reason is None:
        return None
    return reason.strip() or None


class ApplicationWorkflow:
    def __init__(self, db: Session, notifier: Optional[NotificationService] = None):
        self.db = db
        self.notifier = notifier or DefaultNotificationService()

    # ==================== INTERNALS ====================

    def _finish(
        self,
        application: StudentApplication,
        action: WorkflowAction,
        actor: User,
        from_status: Optional[ApplicationStatus],
        notes: Optional[str] = None,
    ) -> StudentApplication:
        record_transition(self.db, application, action, from_status, actor.id, notes)
        commit_transition(self.db, application, action)
        self.db.refresh(application)

        logger.info(
            "Application %s: %s -> %s (%s by %s)",
            application.id,
            from_status.value if from_status else "none",
            ApplicationStatus(application.status).value,
            action.value,
            actor.id,
        )

        dispatch(
            TransitionContext(
                db=self.db,
                action=action,
                application=application,
                actor=actor,
                notifier=self.notifier,
                from_status=from_status,
            )
        )
        return application

    def _move(
        self,
        application_id: UUID,
        actor: User,
        action: WorkflowAction,
    ):
        """Load for update, check capability and transition; returns (application, from_status)."""
        application = load_application(self.db, application_id, for_update=True)
        transition = TRANSITIONS[action]
        if transition.permission is not None:
            ensure_permission(self.db, actor, transition.permission)
        check_transition(action, application)
        return application, ApplicationStatus(application.status)

    # ==================== STUDENT ====================

    def submit_application(self, actor: User, payload: ApplicationPayload) -> StudentApplication:
        """
        Create a new Pending application owned by ``actor``.

        Raises InvalidTransition when the actor already holds an application
        that is pending, under review, incomplete or approved.
        """
        data = validate_payload(payload)

        # Serialises submissions of the same user where row locks are supported
        self.db.query(User).filter(User.id == actor.id).with_for_update().first()
        blocking = (
            self.db.query(StudentApplication)
            .filter(
                StudentApplication.user_id == actor.id,
                StudentApplication.status.in_(list(BLOCKING_STATUSES)),
            )
            .first()
        )
        check_transition(WorkflowAction.SUBMIT, None)
        if blocking is not None:
            raise InvalidTransition(
                f"You already have an application in status '{ApplicationStatus(blocking.status).value}'"
            )

        now = utcnow()
        application = StudentApplication(
            user_id=actor.id,
            status=ApplicationStatus.PENDING,
            is_posted=False,
            submitted_at=now,
            updated_at=now,
        )
        _apply_payload(application, data)
        self.db.add(application)
        try:
            return self._finish(application, WorkflowAction.SUBMIT, actor, None)
        except IntegrityError as exc:
            logger.info("Concurrent submission by %s rejected", actor.id)
            raise InvalidTransition("You already have an active application") from exc

    def resubmit(
        self, application_id: UUID, actor: User, payload: ApplicationPayload
    ) -> StudentApplication:
        """Replace the payload of an Incomplete application and return it to Pending."""
        application = load_application(self.db, application_id, for_update=True)
        if application.user_id != actor.id:
            raise Unauthorized("Only the applicant can resubmit this application")
        check_transition(WorkflowAction.RESUBMIT, application)
        data = validate_payload(payload)

        from_status = ApplicationStatus(application.status)
        _apply_payload(application, data)
        application.status = ApplicationStatus.PENDING
        application.rejection_reason = None
        return self._finish(application, WorkflowAction.RESUBMIT, actor, from_status)

    # ==================== MANAGER ====================

    def mark_under_review(self, application_id: UUID, actor: User) -> StudentApplication:
        application, from_status = self._move(application_id, actor, WorkflowAction.MARK_UNDER_REVIEW)
        application.status = ApplicationStatus.UNDER_REVIEW
        application.reviewed_by_manager_id = actor.id
        application.reviewed_by_manager_at = utcnow()
        return self._finish(application, WorkflowAction.MARK_UNDER_REVIEW, actor, from_status)

    def mark_incomplete(
        self, application_id: UUID, actor: User, reason: Optional[str] = None
    ) -> StudentApplication:
        application, from_status = self._move(application_id, actor, WorkflowAction.MARK_INCOMPLETE)
        reason = _clean_reason(reason)
        application.status = ApplicationStatus.INCOMPLETE
        application.rejection_reason = reason
        return self._finish(application, WorkflowAction.MARK_INCOMPLETE, actor, from_status, reason)

    def reject(
        self, application_id: UUID, actor: User, reason: Optional[str] = None
    ) -> StudentApplication:
        """Reject a Pending or UnderReview application. Managers and admins only."""
        application = load_application(self.db, application_id, for_update=True)
        if actor.role != UserRole.ADMIN.value and not has_permission(
            self.db, actor, Students.MANAGE
        ):
            raise Unauthorized(f"Permission '{Students.MANAGE}' required")
        check_transition(WorkflowAction.REJECT, application)

        from_status = ApplicationStatus(application.status)
        reason = _clean_reason(reason)
        application.status = ApplicationStatus.REJECTED
        application.rejection_reason = reason
        return self._finish(application, WorkflowAction.REJECT, actor, from_status, reason)

    def delete_rejected(self, application_id: UUID, actor: User) -> None:
        """Permanently remove a Rejected application. Manager role only."""
        application = load_application(self.db, application_id, for_update=True)
        if actor.role != UserRole.MANAGER.value:
            raise Unauthorized("Only managers can delete applications")
        ensure_permission(self.db, actor, Students.MANAGE)
        check_transition(WorkflowAction.DELETE, application)

        self.db.delete(application)
        commit_transition(self.db, application, WorkflowAction.DELETE)
        logger.info("Rejected application %s deleted by %s", application_id, actor.id)

    # ==================== ADMIN ====================

    def approve(self, application_id: UUID, actor: User) -> StudentApplication:
        application, from_status = self._move(application_id, actor, WorkflowAction.APPROVE)
        application.status = ApplicationStatus.APPROVED
        application.approved_by_admin_id = actor.id
        application.approved_by_admin_at = utcnow()
        return self._finish(application, WorkflowAction.APPROVE, actor, from_status)

    def post_as_profile(
        self,
        application_id: UUID,
        actor: User,
        overrides: Optional[Union[PostProfileRequest, dict]] = None,
    ) -> UUID:
        return posting.post_as_profile(
            self.db, application_id, actor, overrides=overrides, notifier=self.notifier
        )

    # ==================== READS ====================

    def get_application(self, application_id: UUID, actor: User) -> StudentApplication:
        application = load_application(self.db, application_id)
        if application.user_id != actor.id:
            ensure_permission(self.db, actor, Students.MANAGE)
        return application

    def get_my_application(self, actor: User) -> StudentApplication:
        application = (
            self.db.query(StudentApplication)
            .filter(StudentApplication.user_id == actor.id)
            .order_by(StudentApplication.submitted_at.desc())
            .first()
        )
        if application is None:
            raise NotFound("You have not submitted an application")
        return application

    def list_applications(
        self,
        actor: User,
        status: Optional[ApplicationStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[StudentApplication]:
        ensure_permission(self.db, actor, Students.MANAGE)
        query = self.db.query(StudentApplication)
        if status is not None:
            query = query.filter(StudentApplication.status == status)
        return (
            query.order_by(StudentApplication.submitted_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )


def get_application_workflow(
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notification_service),
) -> ApplicationWorkflow:
    """FastAPI dependency."""
    return ApplicationWorkflow(db, notifier)
