"""
Application state machine.

All status-dependent branching for student applications goes through the
transition table below; an action whose current status is not listed as a
source is rejected with InvalidTransition.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, FrozenSet, List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from charity_hub.authorization.catalog import Students
from charity_hub.database.models.application import (
    ApplicationStatus,
    ApplicationStatusHistory,
    StudentApplication,
)
from charity_hub.errors import DataIntegrityError, InvalidTransition, NotFound

logger = logging.getLogger(__name__)


class WorkflowAction(str, Enum):
    SUBMIT = "submit"
    MARK_UNDER_REVIEW = "mark_under_review"
    MARK_INCOMPLETE = "mark_incomplete"
    RESUBMIT = "resubmit"
    REJECT = "reject"
    APPROVE = "approve"
    POST = "post"
    DELETE = "delete"


@dataclass(frozen=True)
class Transition:
    action: WorkflowAction
    sources: FrozenSet[Optional[ApplicationStatus]]
    target: Optional[ApplicationStatus]
    permission: Optional[str] = None


S = ApplicationStatus

TRANSITIONS: Dict[WorkflowAction, Transition] = {
    t.action: t
    for t in (
        Transition(WorkflowAction.SUBMIT, frozenset({None}), S.PENDING),
        Transition(
            WorkflowAction.MARK_UNDER_REVIEW,
            frozenset({S.PENDING}),
            S.UNDER_REVIEW,
            Students.MANAGE,
        ),
        Transition(
            WorkflowAction.MARK_INCOMPLETE,
            frozenset({S.PENDING, S.UNDER_REVIEW}),
            S.INCOMPLETE,
            Students.MANAGE,
        ),
        Transition(WorkflowAction.RESUBMIT, frozenset({S.INCOMPLETE}), S.PENDING),
        Transition(
            WorkflowAction.REJECT,
            frozenset({S.PENDING, S.UNDER_REVIEW}),
            S.REJECTED,
            Students.MANAGE,
        ),
        # Approval needs a prior review: Pending cannot jump to Approved.
        Transition(
            WorkflowAction.APPROVE,
            frozenset({S.UNDER_REVIEW}),
            S.APPROVED,
            Students.APPROVE,
        ),
        Transition(WorkflowAction.POST, frozenset({S.APPROVED}), S.APPROVED, Students.APPROVE),
        Transition(WorkflowAction.DELETE, frozenset({S.REJECTED}), None, Students.MANAGE),
    )
}

# A user holding an application in one of these cannot submit another.
BLOCKING_STATUSES = frozenset({S.PENDING, S.UNDER_REVIEW, S.INCOMPLETE, S.APPROVED})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def can_transition(action: WorkflowAction, application: Optional[StudentApplication]) -> bool:
    current = application.status if application is not None else None
    if current is not None:
        current = ApplicationStatus(current)
    if current not in TRANSITIONS[action].sources:
        return False
    if action == WorkflowAction.POST and application.is_posted:
        return False
    return True


def check_transition(
    action: WorkflowAction, application: Optional[StudentApplication]
) -> Transition:
    """Return the transition for ``action`` or raise InvalidTransition."""
    transition = TRANSITIONS[action]
    if not can_transition(action, application):
        current = ApplicationStatus(application.status).value if application is not None else "none"
        raise InvalidTransition(
            f"Cannot {action.value.replace('_', ' ')} an application in status '{current}'"
        )
    return transition


def available_actions(application: StudentApplication) -> List[str]:
    """Actions whose status precondition currently holds (guards not evaluated)."""
    return [
        action.value
        for action in WorkflowAction
        if action != WorkflowAction.SUBMIT and can_transition(action, application)
    ]


def assert_invariants(application: StudentApplication) -> None:
    """Raise DataIntegrityError if the publication link is inconsistent."""
    try:
        status = ApplicationStatus(application.status)
    except ValueError:
        raise DataIntegrityError(
            f"Application {application.id} has unknown status {application.status!r}"
        )
    if application.is_posted and status != ApplicationStatus.APPROVED:
        raise DataIntegrityError(
            f"Application {application.id} is posted but in status '{status.value}'"
        )
    if bool(application.is_posted) != (application.profile_id is not None):
        raise DataIntegrityError(
            f"Application {application.id} posting flag and profile link disagree"
        )


def load_application(db: Session, application_id: UUID, for_update: bool = False) -> StudentApplication:
    query = db.query(StudentApplication).filter(StudentApplication.id == application_id)
    if for_update:
        query = query.with_for_update()
    application = query.first()
    if application is None:
        raise NotFound("Application not found")
    return application


def record_transition(
    db: Session,
    application: StudentApplication,
    action: WorkflowAction,
    from_status: Optional[ApplicationStatus],
    actor_id: Optional[UUID],
    notes: Optional[str] = None,
) -> None:
    now = utcnow()
    application.updated_at = now
    application.status_history.append(
        ApplicationStatusHistory(
            action=action.value,
            from_status=from_status,
            to_status=application.status,
            changed_by=actor_id,
            notes=notes,
            created_at=now,
        )
    )


def commit_transition(db: Session, application: StudentApplication, action: WorkflowAction) -> None:
    """
    Commit the pending transition.

    The row is written with a version check, so a transition computed against
    a status another writer has already changed is rolled back and reported
    as InvalidTransition.
    """
    assert_invariants(application)
    application_id = application.id
    try:
        db.commit()
    except StaleDataError as exc:
        db.rollback()
        logger.info("Stale %s on application %s rejected", action.value, application_id)
        raise InvalidTransition(
            "Application was modified by another request; reload and try again"
        ) from exc
    except IntegrityError:
        db.rollback()
        raise
