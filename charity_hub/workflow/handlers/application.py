from typing import List

from sqlalchemy.orm import Session

from charity_hub.database.models.auth import User, UserRole
from charity_hub.workflow.engine import WorkflowAction
from charity_hub.workflow.handlers.config import TransitionContext, on_transition
from charity_hub.workflow.notifications import (
    SEVERITY_ERROR,
    SEVERITY_INFO,
    SEVERITY_SUCCESS,
    SEVERITY_WARNING,
)

SIGNATURE = "\n\nBest regards,\nStudent Charity Hub Team"


def users_with_role(db: Session, role: UserRole) -> List[User]:
    return (
        db.query(User)
        .filter(User.role == role.value, User.is_active.is_(True), User.is_guest.is_(False))
        .order_by(User.created_at)
        .all()
    )


def _notify_reviewer(ctx: TransitionContext, title: str, message: str) -> None:
    """Inform the manager who reviewed the application, unless they made this change."""
    reviewer_id = ctx.application.reviewed_by_manager_id
    if reviewer_id is None or reviewer_id == ctx.actor.id:
        return
    reviewer = ctx.db.query(User).filter(User.id == reviewer_id).first()
    if reviewer is None or reviewer.role != UserRole.MANAGER.value:
        return
    ctx.notifier.notify(reviewer.id, title, message, SEVERITY_INFO, "/manager/applications")


def _notify_managers_of_submission(ctx: TransitionContext, resubmitted: bool) -> None:
    application = ctx.application
    verb = "resubmitted" if resubmitted else "submitted"
    for manager in users_with_role(ctx.db, UserRole.MANAGER):
        ctx.notifier.notify(
            manager.id,
            "Student Application Resubmitted" if resubmitted else "New Student Application",
            f"An application by {application.full_name} was {verb} and awaits review.",
            SEVERITY_INFO,
            f"/manager/applications/{application.id}",
        )
        ctx.notifier.notify_email(
            manager.email,
            "New Student Application Received",
            f"Hello {manager.first_name or manager.email},\n\n"
            f"A student application has been {verb} by {application.full_name}.\n\n"
            f"Application ID: {application.id}\n"
            f"Submitted: {application.submitted_at:%Y-%m-%d %H:%M}\n\n"
            "Please review the application in the Manager dashboard." + SIGNATURE,
        )


@on_transition(WorkflowAction.SUBMIT)
def handle_submitted(ctx: TransitionContext):
    _notify_managers_of_submission(ctx, resubmitted=False)
    ctx.notifier.notify(
        ctx.application.user_id,
        "Application Submitted",
        "Your application has been submitted and is pending review.",
        SEVERITY_SUCCESS,
        "/student/application",
    )


@on_transition(WorkflowAction.RESUBMIT)
def handle_resubmitted(ctx: TransitionContext):
    _notify_managers_of_submission(ctx, resubmitted=True)
    ctx.notifier.notify(
        ctx.application.user_id,
        "Application Resubmitted",
        "Your application has been resubmitted and is pending review.",
        SEVERITY_SUCCESS,
        "/student/application",
    )


@on_transition(WorkflowAction.MARK_UNDER_REVIEW)
def handle_under_review(ctx: TransitionContext):
    application = ctx.application
    for admin in users_with_role(ctx.db, UserRole.ADMIN):
        ctx.notifier.notify(
            admin.id,
            "Application Under Review",
            f"Application by {application.full_name} is now under review and awaits approval.",
            SEVERITY_INFO,
            f"/admin/applications/{application.id}",
        )
        ctx.notifier.notify_email(
            admin.email,
            "Student Application Forwarded for Review",
            f"Hello {admin.first_name or admin.email},\n\n"
            "A student application has been forwarded to you for final review.\n\n"
            f"Application ID: {application.id}\n"
            f"Student: {application.full_name}\n"
            f"Reviewed by: {ctx.actor.full_name}\n\n"
            "Please approve or reject the application in the Admin dashboard." + SIGNATURE,
        )
    ctx.notifier.notify(
        application.user_id,
        "Application Under Review",
        "Your application has been forwarded to administration for final review.",
        SEVERITY_INFO,
        "/student/application",
    )


@on_transition(WorkflowAction.MARK_INCOMPLETE)
def handle_incomplete(ctx: TransitionContext):
    application = ctx.application
    body = f"Dear {application.full_name},\n\nYour application requires additional information or documents.\n\n"
    if application.rejection_reason:
        body += f"Missing information: {application.rejection_reason}\n\n"
    body += "Please log in to your account and resubmit your application."
    ctx.notifier.notify_email(
        application.email, "Action Required: Complete Your Application", body + SIGNATURE
    )
    ctx.notifier.notify(
        application.user_id,
        "Application Incomplete",
        "Your application has been marked as incomplete. Please submit the missing information.",
        SEVERITY_WARNING,
        "/student/application",
    )
    _notify_reviewer(
        ctx,
        "Application Marked Incomplete",
        f"Application for {application.full_name} has been marked incomplete.",
    )


@on_transition(WorkflowAction.REJECT)
def handle_rejected(ctx: TransitionContext):
    application = ctx.application
    body = (
        f"Dear {application.full_name},\n\n"
        "Thank you for your interest in Student Charity Hub.\n\n"
        "After careful review, we are unable to approve your application at this time.\n\n"
    )
    if application.rejection_reason:
        body += f"Reason: {application.rejection_reason}\n\n"
    body += "You are welcome to apply again if your circumstances change."
    ctx.notifier.notify_email(
        application.email, "Update on Your Student Charity Hub Application", body + SIGNATURE
    )
    ctx.notifier.notify(
        application.user_id,
        "Application Rejected",
        f"Your application has been rejected. Reason: {application.rejection_reason or 'No reason provided'}",
        SEVERITY_ERROR,
        "/student/application",
    )
    _notify_reviewer(
        ctx,
        "Application Rejected",
        f"Application for {application.full_name} has been rejected.",
    )


@on_transition(WorkflowAction.APPROVE)
def handle_approved(ctx: TransitionContext):
    application = ctx.application
    ctx.notifier.notify_email(
        application.email,
        "Congratulations! Your Application Has Been Approved",
        f"Dear {application.full_name},\n\n"
        "We are pleased to inform you that your application has been approved.\n\n"
        "Your profile will be posted on our platform soon, making you visible to donors." + SIGNATURE,
    )
    ctx.notifier.notify(
        application.user_id,
        "Application Approved",
        "Your application has been approved. Your profile will be posted soon.",
        SEVERITY_SUCCESS,
        "/student/application",
    )
    _notify_reviewer(
        ctx,
        "Application Approved",
        f"Application for {application.full_name} has been approved.",
    )


@on_transition(WorkflowAction.POST)
def handle_posted(ctx: TransitionContext):
    application = ctx.application
    ctx.notifier.notify_email(
        application.email,
        "Your Application Has Been Posted!",
        f"Hello {application.full_name},\n\n"
        "Your profile is now live on Student Charity Hub. You can receive donations, "
        "track your funding progress and post progress updates for your donors." + SIGNATURE,
    )
    ctx.notifier.notify(
        application.user_id,
        "Your Application Has Been Posted!",
        "Your profile is live. You can now receive donations and track your progress.",
        SEVERITY_SUCCESS,
        "/student/dashboard",
    )
