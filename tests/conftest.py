"""
Student Charity Hub - Test Configuration and Fixtures
"""
import os
import uuid
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

# Set testing environment before the application reads its settings
os.environ.setdefault('DATABASE_URL', 'sqlite:///./charity_hub_test.db')
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['MAIL_SERVER'] = ''

from charity_hub.database.config.db import Base, build_engine, get_db
from charity_hub.database.models import StudentProfile, User, UserRole
from charity_hub.main import app
from charity_hub.utils.auth import create_access_token
from charity_hub.workflow.notifications import NotificationService, get_notification_service
from charity_hub.workflow.service import ApplicationWorkflow


class RecordingNotifier(NotificationService):
    """Keeps every notification in memory instead of delivering it."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.notifications = []
        self.emails = []

    def notify(self, user_id, title, message, severity="info", link=None):
        if self.fail:
            raise RuntimeError("notification backend down")
        self.notifications.append(
            {"user_id": user_id, "title": title, "message": message, "severity": severity, "link": link}
        )

    def notify_email(self, address, subject, body):
        if self.fail:
            raise RuntimeError("smtp down")
        self.emails.append({"address": address, "subject": subject, "body": body})

    def titles_for(self, user_id):
        return [n["title"] for n in self.notifications if n["user_id"] == user_id]

    def subjects_for(self, address):
        return [e["subject"] for e in self.emails if e["address"] == address]


@pytest.fixture
def engine(tmp_path):
    """Fresh SQLite database file for each test"""
    test_engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}", echo=False)
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def failing_notifier():
    return RecordingNotifier(fail=True)


@pytest.fixture
def workflow(db, notifier):
    return ApplicationWorkflow(db, notifier)


@pytest.fixture
def make_user(db):
    def _make_user(role: UserRole, email: str = None, **kwargs) -> User:
        user = User(
            email=email or f"{role.value}-{uuid.uuid4().hex[:8]}@example.com",
            first_name=kwargs.pop("first_name", role.value.title()),
            last_name=kwargs.pop("last_name", "Tester"),
            password_hash=None,
            role=role.value,
            verified=True,
            is_active=kwargs.pop("is_active", True),
            **kwargs,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def student(make_user):
    return make_user(UserRole.STUDENT)


@pytest.fixture
def manager(make_user):
    return make_user(UserRole.MANAGER)


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.ADMIN)


@pytest.fixture
def donor(make_user):
    return make_user(UserRole.DONOR)


@pytest.fixture
def payload():
    """Valid application payload"""
    return {
        "full_name": "Amina Yusuf",
        "age": 20,
        "place_of_birth": "Kampala",
        "current_residency": "Entebbe, Uganda",
        "email": "amina.yusuf@example.com",
        "phone_number": "+256 700 123456",
        "father_name": "Yusuf Okello",
        "mother_name": "Grace Nakato",
        "parents_annual_salary": Decimal("1200"),
        "family_situation": "Father works seasonally, mother cares for four siblings.",
        "personal_story": (
            "I grew up helping at my mother's market stall after school and taught my "
            "younger siblings to read by lamplight. I want to study engineering."
        ),
        "academic_background": "Top of my class in mathematics and physics at secondary school.",
        "current_education_level": "Secondary school graduate",
        "field_of_study": "Civil Engineering",
        "dream_career": "Bridge engineer",
        "requested_funding_amount": Decimal("500"),
        "funding_purpose": "University tuition for the first year",
        "profile_image_url": "https://cdn.example.com/amina.jpg",
        "proof_document_urls": ["https://cdn.example.com/transcript.pdf"],
        "gallery_image_urls": [],
    }


@pytest.fixture
def approved_application(workflow, student, manager, admin, payload):
    """Application that went through review and approval"""
    application = workflow.submit_application(student, payload)
    workflow.mark_under_review(application.id, manager)
    return workflow.approve(application.id, admin)


@pytest.fixture
def posted_profile(db, workflow, approved_application, admin):
    profile_id = workflow.post_as_profile(approved_application.id, admin)
    return db.get(StudentProfile, profile_id)


@pytest.fixture
def client(session_factory, notifier):
    """Test client with database and notification overrides"""
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_service] = lambda: notifier

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Build authentication headers for a user"""
    def _auth_headers(user: User) -> dict:
        token = create_access_token(user)
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers
