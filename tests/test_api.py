"""
HTTP surface: routers, dependencies and error rendering
"""
import uuid
from decimal import Decimal

import pytest

from charity_hub.authorization.catalog import Students
from charity_hub.database.models import StudentApplication, StudentProfile, UserRole
from charity_hub.workflow import ledger


@pytest.fixture
def json_payload(payload):
    return {key: str(value) if isinstance(value, Decimal) else value for key, value in payload.items()}


@pytest.fixture
def submitted(client, auth_headers, student, json_payload):
    response = client.post("/api/v1/applications", json=json_payload, headers=auth_headers(student))
    assert response.status_code == 201
    return response.json()


class TestAuth:
    def test_register_login_me(self, client):
        response = client.post(
            "/api/v1/auth/register",
            json={
                "email": "New.Student@example.com",
                "password": "correct-horse-battery",
                "first_name": "New",
                "last_name": "Student",
            },
        )
        assert response.status_code == 201
        assert response.json()["email"] == "new.student@example.com"
        assert response.json()["role"] == "student"

        response = client.post(
            "/api/v1/auth/login",
            json={"email": "new.student@example.com", "password": "correct-horse-battery"},
        )
        assert response.status_code == 200
        token = response.json()["access_token"]

        response = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        assert response.json()["first_name"] == "New"

    def test_staff_roles_cannot_self_register(self, client):
        response = client.post(
            "/api/v1/auth/register",
            json={"email": "boss@example.com", "password": "correct-horse-battery", "role": "admin"},
        )
        assert response.status_code == 422

    def test_missing_token(self, client):
        assert client.get("/api/v1/auth/me").status_code == 401


class TestApplicationFlow:
    def test_full_review_flow(self, client, db, auth_headers, student, manager, admin, submitted):
        application_id = submitted["id"]
        assert submitted["status"] == "pending"
        assert "mark_under_review" in submitted["available_actions"]

        response = client.put(
            f"/api/v1/manager/applications/{application_id}/review", headers=auth_headers(manager)
        )
        assert response.status_code == 200
        assert response.json()["status"] == "under_review"
        assert response.json()["reviewed_by_manager_id"] == str(manager.id)

        response = client.get("/api/v1/admin/applications", headers=auth_headers(admin))
        assert [a["id"] for a in response.json()] == [application_id]

        response = client.put(
            f"/api/v1/admin/applications/{application_id}/approve", headers=auth_headers(admin)
        )
        assert response.status_code == 200
        assert response.json()["status"] == "approved"

        response = client.post(
            f"/api/v1/admin/applications/{application_id}/post",
            json={"funding_goal": "650"},
            headers=auth_headers(admin),
        )
        assert response.status_code == 201
        profile_id = uuid.UUID(response.json()["profile_id"])

        db.expire_all()
        assert db.get(StudentProfile, profile_id).funding_goal == Decimal("650")

        response = client.get("/api/v1/applications/me", headers=auth_headers(student))
        assert response.status_code == 200
        body = response.json()
        assert body["is_posted"] is True
        assert body["profile_id"] == str(profile_id)
        assert [h["action"] for h in body["status_history"]] == [
            "submit",
            "mark_under_review",
            "approve",
            "post",
        ]

    def test_post_without_body_uses_requested_amount(self, client, db, auth_headers, admin, approved_application):
        response = client.post(
            f"/api/v1/admin/applications/{approved_application.id}/post", headers=auth_headers(admin)
        )
        assert response.status_code == 201

        response = client.post(
            f"/api/v1/admin/applications/{approved_application.id}/post", headers=auth_headers(admin)
        )
        assert response.status_code == 409
        assert response.headers["X-App-Error-Code"] == "already_posted"

    def test_pending_cannot_be_approved(self, client, auth_headers, admin, submitted):
        response = client.put(
            f"/api/v1/admin/applications/{submitted['id']}/approve", headers=auth_headers(admin)
        )
        assert response.status_code == 409
        assert response.headers["X-App-Error-Code"] == "invalid_transition"

    def test_student_cannot_review(self, client, auth_headers, student, submitted):
        response = client.put(
            f"/api/v1/manager/applications/{submitted['id']}/review", headers=auth_headers(student)
        )
        assert response.status_code == 403
        assert response.headers["X-App-Error-Code"] == "unauthorized"

    def test_student_cannot_list(self, client, auth_headers, student, submitted):
        response = client.get("/api/v1/manager/applications", headers=auth_headers(student))
        assert response.status_code == 403

    def test_underage_submission(self, client, db, auth_headers, student, json_payload):
        json_payload["age"] = 15
        response = client.post("/api/v1/applications", json=json_payload, headers=auth_headers(student))
        assert response.status_code == 422
        assert db.query(StudentApplication).count() == 0

    def test_donor_cannot_submit(self, client, auth_headers, donor, json_payload):
        response = client.post("/api/v1/applications", json=json_payload, headers=auth_headers(donor))
        assert response.status_code == 403

    def test_other_student_cannot_read(self, client, auth_headers, make_user, submitted):
        other = make_user(UserRole.STUDENT)
        response = client.get(f"/api/v1/applications/{submitted['id']}", headers=auth_headers(other))
        assert response.status_code == 403

    def test_unknown_application(self, client, auth_headers, manager):
        response = client.put(
            f"/api/v1/manager/applications/{uuid.uuid4()}/review", headers=auth_headers(manager)
        )
        assert response.status_code == 404
        assert response.headers["X-App-Error-Code"] == "not_found"

    def test_incomplete_then_resubmit(self, client, auth_headers, student, manager, submitted, json_payload):
        application_id = submitted["id"]
        response = client.put(
            f"/api/v1/manager/applications/{application_id}/mark-incomplete",
            json={"reason": "Upload your transcript"},
            headers=auth_headers(manager),
        )
        assert response.json()["status"] == "incomplete"
        assert response.json()["rejection_reason"] == "Upload your transcript"

        json_payload["proof_document_urls"] = ["https://cdn.example.com/transcript-v2.pdf"]
        response = client.put(
            f"/api/v1/applications/{application_id}/resubmit",
            json=json_payload,
            headers=auth_headers(student),
        )
        assert response.status_code == 200
        assert response.json()["status"] == "pending"
        assert response.json()["rejection_reason"] is None
        assert response.json()["proof_document_urls"] == ["https://cdn.example.com/transcript-v2.pdf"]

    def test_reject_and_delete(self, client, db, auth_headers, manager, submitted):
        application_id = submitted["id"]
        response = client.put(
            f"/api/v1/manager/applications/{application_id}/reject",
            json={"reason": "Not eligible"},
            headers=auth_headers(manager),
        )
        assert response.json()["status"] == "rejected"

        response = client.delete(
            f"/api/v1/manager/applications/{application_id}", headers=auth_headers(manager)
        )
        assert response.status_code == 204

        db.expire_all()
        assert db.get(StudentApplication, uuid.UUID(application_id)) is None


class TestPermissionsApi:
    def test_catalog(self, client, auth_headers, admin):
        response = client.get("/api/v1/admin/permissions/catalog", headers=auth_headers(admin))
        assert response.status_code == 200
        assert Students.APPROVE in response.json()["groups"]["students"]

    def test_grant_view_and_audit(self, client, auth_headers, admin, manager):
        response = client.post(
            f"/api/v1/admin/permissions/{manager.id}",
            json={"permissions_to_add": [Students.APPROVE]},
            headers=auth_headers(admin),
        )
        assert response.status_code == 200
        assert response.json()["added"] == [Students.APPROVE]

        response = client.get(f"/api/v1/admin/permissions/{manager.id}", headers=auth_headers(admin))
        body = response.json()
        assert body["claims"] == [Students.APPROVE]
        assert Students.APPROVE in body["effective_permissions"]
        assert Students.APPROVE not in body["role_permissions"]

        response = client.get("/api/v1/admin/permissions/audit", headers=auth_headers(admin))
        assert response.status_code == 200
        assert response.json()[0]["target_user_id"] == str(manager.id)

    def test_unknown_capability(self, client, auth_headers, admin, manager):
        response = client.post(
            f"/api/v1/admin/permissions/{manager.id}",
            json={"permissions_to_add": ["students.destroy"]},
            headers=auth_headers(admin),
        )
        assert response.status_code == 400
        assert response.headers["X-App-Error-Code"] == "invalid_capability"
        assert "students.destroy" in response.json()["detail"]

    def test_manager_cannot_grant(self, client, auth_headers, manager, student):
        response = client.post(
            f"/api/v1/admin/permissions/{student.id}",
            json={"permissions_to_add": [Students.MANAGE]},
            headers=auth_headers(manager),
        )
        assert response.status_code == 403


class TestDonationsApi:
    def test_donate_complete_and_reconcile(self, client, auth_headers, donor, manager, posted_profile):
        response = client.post(
            "/api/v1/donations",
            json={"profile_id": str(posted_profile.id), "amount": "200"},
            headers=auth_headers(donor),
        )
        assert response.status_code == 201
        donation_id = response.json()["id"]
        assert response.json()["status"] == "pending"

        response = client.put(
            f"/api/v1/donations/{donation_id}/complete",
            json={"transaction_id": "PAYPAL-123"},
            headers=auth_headers(donor),
        )
        assert response.status_code == 200
        assert response.json()["status"] == "completed"

        response = client.put(f"/api/v1/donations/{donation_id}/cancel", headers=auth_headers(donor))
        assert response.status_code == 409

        response = client.get(
            f"/api/v1/donations/profiles/{posted_profile.id}/ledger", headers=auth_headers(manager)
        )
        assert response.status_code == 200
        assert Decimal(response.json()["amount_raised"]) == Decimal("200")
        assert response.json()["consistent"] is True

    def test_other_donor_cannot_settle(self, client, auth_headers, donor, make_user, posted_profile):
        response = client.post(
            "/api/v1/donations",
            json={"profile_id": str(posted_profile.id), "amount": "20"},
            headers=auth_headers(donor),
        )
        stranger = make_user(UserRole.DONOR)
        response = client.put(
            f"/api/v1/donations/{response.json()['id']}/complete", headers=auth_headers(stranger)
        )
        assert response.status_code == 403

    def test_guest_donation(self, client, auth_headers, manager, posted_profile):
        response = client.post(
            "/api/v1/donations/guest",
            json={"profile_id": str(posted_profile.id), "amount": "35", "donor_email": "guest@example.com"},
        )
        assert response.status_code == 201
        donation_id = response.json()["id"]

        response = client.put(f"/api/v1/donations/{donation_id}/complete", headers=auth_headers(manager))
        assert response.status_code == 200

    def test_ledger_mismatch_is_server_error(self, client, db, auth_headers, manager, posted_profile):
        posted_profile.amount_raised = Decimal("999")
        db.commit()

        response = client.get(
            f"/api/v1/donations/profiles/{posted_profile.id}/ledger", headers=auth_headers(manager)
        )
        assert response.status_code == 500
        assert response.headers["X-App-Error-Code"] == "ledger_integrity_fault"

    def test_guest_donation_with_registered_address(self, client, donor, posted_profile):
        response = client.post(
            "/api/v1/donations/guest",
            json={"profile_id": str(posted_profile.id), "amount": "15", "donor_email": donor.email},
        )
        assert response.status_code == 201
        assert response.json()["donor_id"] != str(donor.id)


class TestGuestAccounts:
    def test_registering_guest_address_needs_verification(self, client, posted_profile):
        response = client.post(
            "/api/v1/donations/guest",
            json={"profile_id": str(posted_profile.id), "amount": "10", "donor_email": "kind.stranger@example.com"},
        )
        guest_id = response.json()["donor_id"]

        response = client.post(
            "/api/v1/auth/register",
            json={
                "email": "kind.stranger@example.com",
                "password": "correct-horse-battery",
                "role": "donor",
            },
        )
        assert response.status_code == 201
        assert response.json()["id"] == guest_id
        assert response.json()["verified"] is False

        response = client.post(
            "/api/v1/auth/login",
            json={"email": "kind.stranger@example.com", "password": "correct-horse-battery"},
        )
        assert response.status_code == 403


class TestStudentsApi:
    def test_directory_lists_visible_profiles(self, client, db, posted_profile):
        response = client.get("/api/v1/students")
        assert response.status_code == 200
        assert response.json()["total_count"] == 1
        assert response.json()["items"][0]["id"] == str(posted_profile.id)

        posted_profile.is_visible = False
        db.commit()

        response = client.get("/api/v1/students")
        assert response.json()["total_count"] == 0
        assert response.json()["items"] == []

    @pytest.mark.parametrize(
        "params, expected",
        [
            ({"search": "bridge"}, 1),
            ({"search": "astronaut"}, 0),
            ({"location": "entebbe"}, 1),
            ({"location": "Nairobi"}, 0),
        ],
    )
    def test_directory_filters(self, client, posted_profile, params, expected):
        response = client.get("/api/v1/students", params=params)
        assert response.json()["total_count"] == expected

    def test_detail_counts_completed_donors(self, client, db, donor, notifier, posted_profile):
        completed = ledger.create_donation(db, donor, posted_profile.id, 40)
        ledger.complete_donation(db, completed.id, notifier=notifier)
        ledger.create_donation(db, donor, posted_profile.id, 70)

        response = client.get(f"/api/v1/students/{posted_profile.id}")
        assert response.status_code == 200
        body = response.json()
        assert body["donor_count"] == 1
        assert Decimal(body["amount_raised"]) == Decimal("40")
        assert body["full_name"] == posted_profile.full_name

    def test_hidden_profile_is_staff_only(self, client, db, auth_headers, donor, manager, posted_profile):
        posted_profile.is_visible = False
        db.commit()
        url = f"/api/v1/students/{posted_profile.id}"

        assert client.get(url).status_code == 404
        assert client.get(url, headers=auth_headers(donor)).status_code == 404
        assert client.get(url, headers=auth_headers(manager)).status_code == 200

    def test_unknown_profile(self, client):
        assert client.get(f"/api/v1/students/{uuid.uuid4()}").status_code == 404

    def test_my_profile(self, client, auth_headers, student, make_user, donor, posted_profile):
        response = client.get("/api/v1/students/my-profile", headers=auth_headers(student))
        assert response.status_code == 200
        assert response.json()["id"] == str(posted_profile.id)

        other = make_user(UserRole.STUDENT)
        assert client.get("/api/v1/students/my-profile", headers=auth_headers(other)).status_code == 404
        assert client.get("/api/v1/students/my-profile", headers=auth_headers(donor)).status_code == 403
