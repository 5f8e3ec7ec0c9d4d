"""
Notification fan-out after committed transitions
"""
import asyncio
import logging

import pytest
from fastapi_mail import MessageType

from charity_hub.database.models import ApplicationStatus, Notification, StudentApplication, UserRole
from charity_hub.errors import InvalidTransition
from charity_hub.utils import smtp
from charity_hub.workflow import ledger
from charity_hub.workflow.engine import WorkflowAction
from charity_hub.workflow.handlers import TRANSITION_HANDLERS
from charity_hub.workflow.notifications import DefaultNotificationService, SafeNotifier
from charity_hub.workflow.service import ApplicationWorkflow


def test_submission_notifies_every_manager(workflow, notifier, student, make_user, payload):
    managers = [make_user(UserRole.MANAGER), make_user(UserRole.MANAGER)]
    make_user(UserRole.MANAGER, is_active=False)

    workflow.submit_application(student, payload)

    for manager in managers:
        assert notifier.titles_for(manager.id) == ["New Student Application"]
        assert notifier.subjects_for(manager.email) == ["New Student Application Received"]
    assert len([n for n in notifier.notifications if n["title"] == "New Student Application"]) == 2
    assert notifier.titles_for(student.id) == ["Application Submitted"]


def test_review_notifies_admins_and_submitter(workflow, notifier, student, manager, admin, payload):
    application = workflow.submit_application(student, payload)
    workflow.mark_under_review(application.id, manager)

    assert "Application Under Review" in notifier.titles_for(admin.id)
    assert notifier.subjects_for(admin.email) == ["Student Application Forwarded for Review"]
    assert "Application Under Review" in notifier.titles_for(student.id)


def test_reviewing_manager_hears_about_decision(workflow, notifier, student, manager, admin, payload):
    application = workflow.submit_application(student, payload)
    workflow.mark_under_review(application.id, manager)
    workflow.approve(application.id, admin)

    assert "Application Approved" in notifier.titles_for(manager.id)
    assert "Application Approved" in notifier.titles_for(student.id)
    assert "Congratulations! Your Application Has Been Approved" in notifier.subjects_for(payload["email"])


def test_manager_is_not_told_about_own_action(workflow, notifier, student, manager, payload):
    application = workflow.submit_application(student, payload)
    workflow.mark_under_review(application.id, manager)
    workflow.mark_incomplete(application.id, manager, "Missing transcript")

    assert "Application Marked Incomplete" not in notifier.titles_for(manager.id)
    assert "Application Incomplete" in notifier.titles_for(student.id)
    incomplete_mail = [e for e in notifier.emails if e["subject"] == "Action Required: Complete Your Application"]
    assert len(incomplete_mail) == 1
    assert "Missing transcript" in incomplete_mail[0]["body"]


def test_rejection_reason_reaches_submitter(workflow, notifier, student, manager, payload):
    application = workflow.submit_application(student, payload)
    workflow.reject(application.id, manager, "Outside our funding region")

    rejected = [n for n in notifier.notifications if n["title"] == "Application Rejected"]
    assert len(rejected) == 1
    assert rejected[0]["user_id"] == student.id
    assert "Outside our funding region" in rejected[0]["message"]


def test_failing_notifier_does_not_undo_transition(db, failing_notifier, student, manager, payload, caplog):
    workflow = ApplicationWorkflow(db, failing_notifier)

    with caplog.at_level(logging.ERROR):
        application = workflow.submit_application(student, payload)
        workflow.mark_under_review(application.id, manager)

    db.expire_all()
    assert db.get(StudentApplication, application.id).status == ApplicationStatus.UNDER_REVIEW
    assert any("Failed to" in record.getMessage() for record in caplog.records)


def test_crashing_handler_does_not_undo_transition(db, workflow, student, payload, monkeypatch, caplog):
    def broken_handler(ctx):
        raise KeyError("template missing")

    monkeypatch.setitem(TRANSITION_HANDLERS, WorkflowAction.SUBMIT, [broken_handler])

    with caplog.at_level(logging.ERROR):
        application = workflow.submit_application(student, payload)

    db.expire_all()
    assert db.get(StudentApplication, application.id).status == ApplicationStatus.PENDING
    assert any("broken_handler" in record.getMessage() for record in caplog.records)


def test_nothing_is_sent_for_rejected_transition(workflow, notifier, student, admin, payload):
    application = workflow.submit_application(student, payload)
    sent = len(notifier.notifications)

    with pytest.raises(InvalidTransition):
        workflow.approve(application.id, admin)

    assert len(notifier.notifications) == sent


def test_safe_notifier_swallows_failures(failing_notifier, caplog):
    safe = SafeNotifier(failing_notifier)
    with caplog.at_level(logging.ERROR):
        safe.notify("user", "Title", "Message")
        safe.notify_email("someone@example.com", "Subject", "Body")
    assert len(caplog.records) == 2


def test_default_service_stores_in_app_notification(db, session_factory, student):
    service = DefaultNotificationService(session_factory=session_factory)
    service.notify(student.id, "Hello", "Welcome aboard", "success", "/student/dashboard")

    stored = db.query(Notification).filter(Notification.user_id == student.id).one()
    assert stored.title == "Hello"
    assert stored.severity == "success"
    assert stored.link_url == "/student/dashboard"
    assert stored.is_read is False


def test_default_service_skips_email_without_smtp(caplog):
    service = DefaultNotificationService(session_factory=None)
    with caplog.at_level(logging.WARNING):
        service.notify_email("someone@example.com", "Subject", "Body")
    assert any("SMTP is not configured" in record.getMessage() for record in caplog.records)


def test_recipients_are_normalised_for_sending():
    recipients = [
        " Donor@Example.com",
        "donor@example.com",
        "",
        f"unknown_{'a' * 32}@{ledger.GUEST_EMAIL_DOMAIN}",
        "manager@example.com",
    ]
    assert smtp.deliverable_recipients(recipients) == ["donor@example.com", "manager@example.com"]
    assert smtp.deliverable_recipients("Solo@Example.com") == ["solo@example.com"]


def test_html_message():
    message = smtp.build_message(["donor@example.com"], "Thank you", "<p>Thanks</p>", html=True)
    assert message.subtype == MessageType.html
    assert message.subject == "Thank you"


def test_placeholder_only_email_is_skipped(monkeypatch, caplog):
    monkeypatch.setattr(smtp, "FastMail", None)
    with caplog.at_level(logging.INFO):
        asyncio.run(smtp.send_mail(f"unknown_abc@{ledger.GUEST_EMAIL_DOMAIN}", "Receipt", "Body"))
    assert any("no deliverable recipients" in record.getMessage() for record in caplog.records)
