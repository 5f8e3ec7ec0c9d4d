"""
Donation ledger consistency
"""
import uuid
from decimal import Decimal

import pytest
from sqlalchemy import delete

from charity_hub.database.models import Donation, DonationStatus, StudentProfile, User, UserRole
from charity_hub.errors import (
    InvalidTransition,
    LedgerIntegrityError,
    NotFound,
    Unauthorized,
    ValidationFailed,
)
from charity_hub.workflow import ledger


def _raised(db, profile_id):
    db.expire_all()
    return Decimal(str(db.get(StudentProfile, profile_id).amount_raised))


class TestCreate:
    def test_new_donation_is_pending(self, db, donor, posted_profile):
        donation = ledger.create_donation(db, donor, posted_profile.id, 50)
        assert donation.status == DonationStatus.PENDING
        assert donation.donor_id == donor.id
        assert _raised(db, posted_profile.id) == 0

    @pytest.mark.parametrize("amount", [0, -10, "abc"])
    def test_amount_must_be_positive(self, db, donor, posted_profile, amount):
        with pytest.raises(ValidationFailed):
            ledger.create_donation(db, donor, posted_profile.id, amount)
        assert db.query(Donation).count() == 0

    def test_hidden_profile_is_not_found(self, db, donor, posted_profile):
        posted_profile.is_visible = False
        db.commit()
        with pytest.raises(NotFound):
            ledger.create_donation(db, donor, posted_profile.id, 50)

    def test_unknown_profile(self, db, donor):
        with pytest.raises(NotFound):
            ledger.create_donation(db, donor, uuid.uuid4(), 50)

    def test_student_cannot_donate(self, db, make_user, posted_profile):
        other_student = make_user(UserRole.STUDENT)
        with pytest.raises(Unauthorized):
            ledger.create_donation(db, other_student, posted_profile.id, 50)


class TestComplete:
    def test_completion_credits_profile(self, db, donor, posted_profile, notifier):
        donation = ledger.create_donation(db, donor, posted_profile.id, 120)
        completed = ledger.complete_donation(db, donation.id, "TX-1", notifier=notifier)

        assert completed.status == DonationStatus.COMPLETED
        assert completed.transaction_id == "TX-1"
        assert completed.completed_at is not None
        assert _raised(db, posted_profile.id) == Decimal("120")
        assert ledger.verify_ledger(db, posted_profile.id) == Decimal("120")

    def test_profile_owner_is_notified(self, db, donor, posted_profile, student, notifier):
        donation = ledger.create_donation(db, donor, posted_profile.id, 40)
        ledger.complete_donation(db, donation.id, notifier=notifier)
        assert "New Donation Received" in notifier.titles_for(student.id)
        assert notifier.subjects_for(donor.email) == ["Thank you for your donation"]

    def test_second_completion_is_rejected(self, db, donor, posted_profile, notifier):
        donation = ledger.create_donation(db, donor, posted_profile.id, 75)
        ledger.complete_donation(db, donation.id, notifier=notifier)
        with pytest.raises(InvalidTransition):
            ledger.complete_donation(db, donation.id, notifier=notifier)
        assert _raised(db, posted_profile.id) == Decimal("75")

    def test_failed_and_cancelled_do_not_count(self, db, donor, posted_profile, notifier):
        failed = ledger.create_donation(db, donor, posted_profile.id, 10)
        cancelled = ledger.create_donation(db, donor, posted_profile.id, 20)
        completed = ledger.create_donation(db, donor, posted_profile.id, 30)

        assert ledger.fail_donation(db, failed.id).status == DonationStatus.FAILED
        assert ledger.cancel_donation(db, cancelled.id).status == DonationStatus.CANCELLED
        ledger.complete_donation(db, completed.id, notifier=notifier)

        with pytest.raises(InvalidTransition):
            ledger.complete_donation(db, failed.id, notifier=notifier)
        with pytest.raises(InvalidTransition):
            ledger.cancel_donation(db, completed.id)

        assert _raised(db, posted_profile.id) == Decimal("30")
        assert ledger.verify_ledger(db, posted_profile.id) == Decimal("30")

    def test_interleaved_completions_sum_up(self, db, session_factory, donor, posted_profile, notifier):
        donations = [ledger.create_donation(db, donor, posted_profile.id, amount) for amount in (100, 250, 5)]
        first = session_factory()
        second = session_factory()
        try:
            # Each session sees the profile total before the other's credit
            first.get(StudentProfile, posted_profile.id)
            second.get(StudentProfile, posted_profile.id)

            ledger.complete_donation(first, donations[0].id, notifier=notifier)
            ledger.complete_donation(second, donations[1].id, notifier=notifier)
            ledger.complete_donation(first, donations[2].id, notifier=notifier)
            with pytest.raises(InvalidTransition):
                ledger.complete_donation(second, donations[0].id, notifier=notifier)
        finally:
            first.close()
            second.close()

        assert _raised(db, posted_profile.id) == Decimal("355")
        assert ledger.verify_ledger(db, posted_profile.id) == Decimal("355")

    def test_missing_profile_rolls_back_completion(self, db, donor, posted_profile, notifier):
        donation = ledger.create_donation(db, donor, posted_profile.id, 60)
        # Simulate a profile row lost outside the application
        db.execute(
            delete(StudentProfile)
            .where(StudentProfile.id == posted_profile.id)
            .execution_options(synchronize_session=False)
        )
        db.commit()

        with pytest.raises(LedgerIntegrityError):
            ledger.complete_donation(db, donation.id, notifier=notifier)

        db.expire_all()
        assert db.get(Donation, donation.id).status == DonationStatus.PENDING

    def test_unknown_donation(self, db):
        with pytest.raises(NotFound):
            ledger.complete_donation(db, uuid.uuid4())


class TestVerify:
    def test_tampered_total_is_detected(self, db, donor, posted_profile, notifier, caplog):
        donation = ledger.create_donation(db, donor, posted_profile.id, 90)
        ledger.complete_donation(db, donation.id, notifier=notifier)

        posted_profile.amount_raised = Decimal("1000")
        db.commit()

        with pytest.raises(LedgerIntegrityError):
            ledger.verify_ledger(db, posted_profile.id)
        assert any(record.levelname == "CRITICAL" for record in caplog.records)

    def test_unknown_profile(self, db):
        with pytest.raises(NotFound):
            ledger.verify_ledger(db, uuid.uuid4())


class TestGuestDonor:
    def test_same_email_resolves_same_donor(self, db):
        first = ledger.resolve_guest_donor(db, "Kind.Stranger@example.com")
        second = ledger.resolve_guest_donor(db, "kind.stranger@example.com")

        assert first.id == second.id
        assert first.is_guest is True
        assert first.role == UserRole.DONOR.value
        assert first.password_hash is None

    def test_without_email_each_donor_is_new(self, db):
        first = ledger.resolve_guest_donor(db)
        second = ledger.resolve_guest_donor(db)
        assert first.id != second.id
        assert db.query(User).filter(User.is_guest.is_(True)).count() == 2

    def test_registered_address_is_not_attributed_to_its_account(self, db, donor, admin):
        for user in (donor, admin):
            guest = ledger.resolve_guest_donor(db, user.email.upper())
            assert guest.id != user.id
            assert guest.is_guest is True
            assert guest.email.startswith("unknown_")
            assert guest.email.endswith("@" + ledger.GUEST_EMAIL_DOMAIN)

    def test_guest_can_donate(self, db, posted_profile, notifier, student):
        guest = ledger.resolve_guest_donor(db)
        emails_before = len(notifier.emails)
        donation = ledger.create_donation(db, guest, posted_profile.id, 25)
        ledger.complete_donation(db, donation.id, notifier=notifier)

        assert _raised(db, posted_profile.id) == Decimal("25")
        # No thank-you email to a made-up address
        assert len(notifier.emails) == emails_before
        assert any(
            n["message"].startswith("A guest donor") for n in notifier.notifications if n["user_id"] == student.id
        )
