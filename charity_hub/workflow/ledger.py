"""
Donation ledger.

A profile's ``amount_raised`` always equals the sum of its completed
donations. Completing a donation is one transaction holding two writes: a
conditional Pending -> Completed status update and an in-database increment
of the profile total. If either does not touch exactly one row, nothing is
committed.
"""
import logging
import uuid
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from charity_hub.authorization.catalog import Donations
from charity_hub.authorization.evaluator import ensure_permission
from charity_hub.database.models.auth import User, UserRole
from charity_hub.database.models.donation import Donation, DonationStatus
from charity_hub.database.models.student import StudentProfile
from charity_hub.errors import (
    InvalidTransition,
    LedgerIntegrityError,
    NotFound,
    ValidationFailed,
)
from charity_hub.settings import GUEST_EMAIL_DOMAIN
from charity_hub.workflow.engine import utcnow
from charity_hub.workflow.notifications import (
    SEVERITY_SUCCESS,
    DefaultNotificationService,
    NotificationService,
    SafeNotifier,
)

logger = logging.getLogger(__name__)


def _to_decimal(value) -> Decimal:
    return Decimal(str(value))


def load_donation(db: Session, donation_id: UUID) -> Donation:
    donation = db.query(Donation).filter(Donation.id == donation_id).first()
    if donation is None:
        raise NotFound("Donation not found")
    return donation


def create_donation(
    db: Session,
    donor: User,
    profile_id: UUID,
    amount,
    payment_method: str = "paypal",
    is_recurring: bool = False,
) -> Donation:
    """Record a Pending donation to a visible profile."""
    ensure_permission(db, donor, Donations.CREATE)

    try:
        amount = _to_decimal(amount)
    except ArithmeticError:
        raise ValidationFailed("Donation amount must be a number")
    if not amount.is_finite() or amount <= 0:
        raise ValidationFailed("Donation amount must be greater than zero")

    profile = (
        db.query(StudentProfile)
        .filter(StudentProfile.id == profile_id, StudentProfile.is_visible.is_(True))
        .first()
    )
    if profile is None:
        raise NotFound("Student profile not found")

    donation = Donation(
        profile_id=profile.id,
        donor_id=donor.id,
        amount=amount,
        payment_method=payment_method,
        status=DonationStatus.PENDING,
        is_recurring=is_recurring,
    )
    db.add(donation)
    db.commit()
    db.refresh(donation)
    logger.info("Donation %s of %s to profile %s created by %s", donation.id, amount, profile.id, donor.id)
    return donation


def resolve_guest_donor(db: Session, email: Optional[str] = None) -> User:
    """
    Return the donor account for an anonymous donation.

    With an email, the guest account for that address is reused or created.
    An address held by a registered account is not trusted from an anonymous
    request, so such donations go to a fresh anonymous guest instead, as do
    donations without an email.
    """
    if email:
        email = email.strip().lower()
        existing = db.query(User).filter(func.lower(User.email) == email).first()
        if existing is not None and existing.is_guest:
            return existing
        if existing is not None:
            email = None
    if not email:
        email = f"unknown_{uuid.uuid4().hex}@{GUEST_EMAIL_DOMAIN}"

    guest = User(
        email=email,
        first_name="Guest",
        last_name="Donor",
        password_hash=None,
        role=UserRole.DONOR.value,
        verified=False,
        is_active=True,
        is_guest=True,
    )
    db.add(guest)
    try:
        db.commit()
    except IntegrityError:
        # Created concurrently by another request.
        db.rollback()
        existing = db.query(User).filter(func.lower(User.email) == email).first()
        if existing is None or not existing.is_guest:
            raise
        return existing
    db.refresh(guest)
    logger.info("Guest donor %s created", guest.id)
    return guest


def _close_pending(
    db: Session, donation_id: UUID, new_status: DonationStatus, **values
) -> Donation:
    """Conditionally move a Pending donation to ``new_status`` without committing."""
    donation = load_donation(db, donation_id)
    result = db.execute(
        update(Donation)
        .where(Donation.id == donation_id, Donation.status == DonationStatus.PENDING)
        .values(status=new_status, **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        current = DonationStatus(donation.status).value
        raise InvalidTransition(f"Cannot mark a {current} donation as {new_status.value}")
    return donation


def complete_donation(
    db: Session,
    donation_id: UUID,
    transaction_id: Optional[str] = None,
    notifier: Optional[NotificationService] = None,
) -> Donation:
    """
    Complete a Pending donation and credit its profile.

    Raises:
        InvalidTransition: the donation is not Pending.
        LedgerIntegrityError: the profile total could not be credited.
    """
    values = {"completed_at": utcnow()}
    if transaction_id:
        values["transaction_id"] = transaction_id
    donation = _close_pending(db, donation_id, DonationStatus.COMPLETED, **values)
    profile_id = donation.profile_id
    amount = donation.amount

    result = db.execute(
        update(StudentProfile)
        .where(StudentProfile.id == profile_id)
        .values(amount_raised=StudentProfile.amount_raised + amount)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        logger.critical(
            "Ledger fault: donation %s completed but profile %s updated %s rows",
            donation_id, profile_id, result.rowcount,
        )
        raise LedgerIntegrityError(
            f"Could not credit donation {donation_id} to profile {profile_id}"
        )

    db.commit()
    db.refresh(donation)
    logger.info("Donation %s completed, %s credited to profile %s", donation_id, amount, profile_id)

    _notify_donation_completed(db, donation, notifier or DefaultNotificationService())
    return donation


def fail_donation(db: Session, donation_id: UUID) -> Donation:
    donation = _close_pending(db, donation_id, DonationStatus.FAILED)
    db.commit()
    db.refresh(donation)
    logger.info("Donation %s failed", donation_id)
    return donation


def cancel_donation(db: Session, donation_id: UUID) -> Donation:
    donation = _close_pending(db, donation_id, DonationStatus.CANCELLED)
    db.commit()
    db.refresh(donation)
    logger.info("Donation %s cancelled", donation_id)
    return donation


def completed_total(db: Session, profile_id: UUID) -> Decimal:
    total = (
        db.query(func.coalesce(func.sum(Donation.amount), 0))
        .filter(Donation.profile_id == profile_id, Donation.status == DonationStatus.COMPLETED)
        .scalar()
    )
    return _to_decimal(total)


def verify_ledger(db: Session, profile_id: UUID) -> Decimal:
    """
    Check that the profile's total matches its completed donations.

    Returns the verified total, or raises LedgerIntegrityError.
    """
    profile = db.query(StudentProfile).filter(StudentProfile.id == profile_id).first()
    if profile is None:
        raise NotFound("Student profile not found")
    db.refresh(profile)

    expected = completed_total(db, profile_id)
    recorded = _to_decimal(profile.amount_raised or 0)
    if expected != recorded:
        logger.critical(
            "Ledger mismatch on profile %s: amount_raised=%s, completed donations=%s",
            profile_id, recorded, expected,
        )
        raise LedgerIntegrityError(
            f"Profile {profile_id} records {recorded} raised but completed donations total {expected}"
        )
    return recorded


def _notify_donation_completed(db: Session, donation: Donation, notifier: NotificationService) -> None:
    notifier = SafeNotifier(notifier)
    profile = db.query(StudentProfile).filter(StudentProfile.id == donation.profile_id).first()
    donor = db.query(User).filter(User.id == donation.donor_id).first()
    if profile is None:
        return
    donor_name = donor.full_name if donor is not None and not donor.is_guest else "A guest donor"
    notifier.notify(
        profile.user_id,
        "New Donation Received",
        f"{donor_name} donated ${donation.amount} to your campaign.",
        SEVERITY_SUCCESS,
        "/student/dashboard",
    )
    if donor is not None and not donor.is_guest:
        notifier.notify_email(
            donor.email,
            "Thank you for your donation",
            f"Hello {donor.first_name or donor.email},\n\n"
            f"Your donation of ${donation.amount} to {profile.full_name} has been received.\n\n"
            "Best regards,\nStudent Charity Hub Team",
        )
