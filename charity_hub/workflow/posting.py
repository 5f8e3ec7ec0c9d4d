"""
Publication of an approved application as a public student profile.

Posting happens once per application and once per user. Both limits are held
by unique constraints on ``student_profiles``; when two posters race, the
loser's transaction is rolled back and classified the same way the
up-front checks would have classified it.
"""
import logging
import uuid
from typing import Optional, Union
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from charity_hub.authorization.catalog import Students
from charity_hub.authorization.evaluator import ensure_permission
from charity_hub.database.models.application import ApplicationStatus, StudentApplication
from charity_hub.database.models.auth import User
from charity_hub.database.models.student import StudentProfile
from charity_hub.errors import AlreadyPosted, DuplicateProfile, InvalidTransition, NotApproved
from charity_hub.schema.application import PostProfileRequest
from charity_hub.workflow.engine import (
    TRANSITIONS,
    WorkflowAction,
    commit_transition,
    load_application,
    record_transition,
)
from charity_hub.workflow.handlers import TransitionContext, dispatch
from charity_hub.workflow.notifications import DefaultNotificationService, NotificationService

logger = logging.getLogger(__name__)


def _trim(value: Optional[str], length: int) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value[:length]


def _column_length(column) -> int:
    return StudentProfile.__table__.c[column].type.length


def _ensure_postable(db: Session, application: StudentApplication) -> None:
    """Raise the error describing why ``application`` cannot be posted, if any."""
    if ApplicationStatus(application.status) not in TRANSITIONS[WorkflowAction.POST].sources:
        raise NotApproved("Only approved applications can be posted")
    if application.is_posted:
        raise AlreadyPosted("Application is already posted")

    existing = (
        db.query(StudentProfile)
        .filter(StudentProfile.user_id == application.user_id)
        .first()
    )
    if existing is not None:
        if existing.source_application_id == application.id:
            raise AlreadyPosted("Application is already posted")
        raise DuplicateProfile("This student already has a public profile")


def post_as_profile(
    db: Session,
    application_id: UUID,
    actor: User,
    overrides: Optional[Union[PostProfileRequest, dict]] = None,
    notifier: Optional[NotificationService] = None,
) -> UUID:
    """
    Create the public profile for an approved application.

    Checks, in order: the application exists, the actor holds
    ``students.approve``, the application is approved, it is not yet posted,
    and its owner has no profile yet.

    Returns:
        The id of the new profile.
    """
    application = load_application(db, application_id, for_update=True)
    ensure_permission(db, actor, Students.APPROVE)
    _ensure_postable(db, application)

    if overrides is None:
        overrides = PostProfileRequest()
    elif isinstance(overrides, dict):
        overrides = PostProfileRequest.model_validate(overrides)

    profile_id = uuid.uuid4()
    profile = StudentProfile(
        id=profile_id,
        user_id=application.user_id,
        source_application_id=application.id,
        full_name=_trim(application.full_name, _column_length("full_name")),
        age=application.age,
        location=_trim(overrides.location or application.current_residency, _column_length("location")),
        story=_trim(application.personal_story, _column_length("story")),
        academic_background=_trim(
            application.academic_background, _column_length("academic_background")
        ),
        dream_career=_trim(application.dream_career, _column_length("dream_career")),
        photo_url=_trim(application.profile_image_url, _column_length("photo_url")),
        funding_goal=overrides.funding_goal or application.requested_funding_amount,
        amount_raised=0,
        is_visible=True,
    )
    db.add(profile)

    application.profile = profile
    application.profile_id = profile_id
    application.is_posted = True
    record_transition(db, application, WorkflowAction.POST, ApplicationStatus.APPROVED, actor.id)

    try:
        commit_transition(db, application, WorkflowAction.POST)
    except (IntegrityError, InvalidTransition):
        # Another poster won; report what they left behind.
        application = load_application(db, application_id)
        _ensure_postable(db, application)
        raise

    logger.info("Application %s posted as profile %s by %s", application_id, profile_id, actor.id)

    db.refresh(application)
    dispatch(
        TransitionContext(
            db=db,
            action=WorkflowAction.POST,
            application=application,
            actor=actor,
            notifier=notifier or DefaultNotificationService(),
            from_status=ApplicationStatus.APPROVED,
            extra={"profile_id": profile_id},
        )
    )
    return profile_id
