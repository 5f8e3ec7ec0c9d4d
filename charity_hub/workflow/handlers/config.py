from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from charity_hub.database.models.application import ApplicationStatus, StudentApplication
from charity_hub.database.models.auth import User
from charity_hub.workflow.engine import WorkflowAction
from charity_hub.workflow.notifications import NotificationService


@dataclass
class TransitionContext:
    """Everything a fan-out handler sees about a committed transition."""
    db: Session
    action: WorkflowAction
    application: StudentApplication
    actor: User
    notifier: NotificationService
    from_status: Optional[ApplicationStatus] = None
    extra: Dict[str, Any] = field(default_factory=dict)


TransitionHandler = Callable[[TransitionContext], None]
TRANSITION_HANDLERS: Dict[WorkflowAction, List[TransitionHandler]] = {}


def on_transition(action: WorkflowAction):
    def _decorator(fn: TransitionHandler):
        TRANSITION_HANDLERS.setdefault(action, []).append(fn)
        return fn

    return _decorator
