import logging

from charity_hub.workflow.handlers.config import (
    TRANSITION_HANDLERS,
    TransitionContext,
    on_transition,
)
from charity_hub.workflow.handlers import application  # noqa: F401  registers handlers
from charity_hub.workflow.notifications import SafeNotifier

logger = logging.getLogger(__name__)


def dispatch(ctx: TransitionContext) -> None:
    """
    Run the fan-out handlers registered for a committed transition.

    Must only be called after the transition is committed. Failures are
    logged and never propagate.
    """
    if not isinstance(ctx.notifier, SafeNotifier):
        ctx.notifier = SafeNotifier(ctx.notifier)
    application_id = ctx.application.id
    for handler in TRANSITION_HANDLERS.get(ctx.action, []):
        try:
            handler(ctx)
        except Exception:
            logger.exception(
                "Notification handler %s failed for %s on application %s",
                handler.__name__, ctx.action.value, application_id,
            )


__all__ = ["TRANSITION_HANDLERS", "TransitionContext", "dispatch", "on_transition"]
