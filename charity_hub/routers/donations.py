from fastapi import APIRouter, Depends, status
from typing import Optional
from uuid import UUID
from sqlalchemy.orm import Session

from charity_hub.authorization.catalog import Donations
from charity_hub.authorization.evaluator import ensure_permission, require_permission
from charity_hub.database.config.db import get_db
from charity_hub.database.models.auth import User
from charity_hub.database.models.student import StudentProfile
from charity_hub.errors import NotFound
from charity_hub.schema.donation import (
    DonationCompleteRequest,
    DonationCreate,
    DonationResponse,
    GuestDonationCreate,
    LedgerResponse,
)
from charity_hub.utils.auth import get_current_user
from charity_hub.workflow import ledger
from charity_hub.workflow.notifications import NotificationService, get_notification_service

donation_router = APIRouter(prefix="/donations", tags=["Donations"])


def _ensure_can_settle(db: Session, donation_id: UUID, user: User) -> None:
    """The donor may settle their own donation; anyone else needs donations.verify."""
    donation = ledger.load_donation(db, donation_id)
    if donation.donor_id != user.id:
        ensure_permission(db, user, Donations.VERIFY)


@donation_router.post("", response_model=DonationResponse, status_code=status.HTTP_201_CREATED)
def create_donation(
    body: DonationCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return ledger.create_donation(
        db,
        current_user,
        body.profile_id,
        body.amount,
        payment_method=body.payment_method,
        is_recurring=body.is_recurring,
    )


@donation_router.post("/guest", response_model=DonationResponse, status_code=status.HTTP_201_CREATED)
def create_guest_donation(
    body: GuestDonationCreate,
    db: Session = Depends(get_db),
):
    """
    Donate without an account.

    The donation is attributed to the guest donor account for ``donor_email``,
    created on first use. Registered accounts are never credited this way.
    """
    donor = ledger.resolve_guest_donor(db, body.donor_email)
    return ledger.create_donation(
        db,
        donor,
        body.profile_id,
        body.amount,
        payment_method=body.payment_method,
        is_recurring=body.is_recurring,
    )


@donation_router.put("/{donation_id}/complete", response_model=DonationResponse)
def complete_donation(
    donation_id: UUID,
    body: Optional[DonationCompleteRequest] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notification_service),
):
    """Mark a pending donation as paid and credit the student's profile."""
    _ensure_can_settle(db, donation_id, current_user)
    transaction_id = body.transaction_id if body else None
    return ledger.complete_donation(db, donation_id, transaction_id, notifier=notifier)


@donation_router.put("/{donation_id}/fail", response_model=DonationResponse)
def fail_donation(
    donation_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _ensure_can_settle(db, donation_id, current_user)
    return ledger.fail_donation(db, donation_id)


@donation_router.put("/{donation_id}/cancel", response_model=DonationResponse)
def cancel_donation(
    donation_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _ensure_can_settle(db, donation_id, current_user)
    return ledger.cancel_donation(db, donation_id)


@donation_router.get("/profiles/{profile_id}/ledger", response_model=LedgerResponse)
def get_profile_ledger(
    profile_id: UUID,
    current_user: User = Depends(require_permission(Donations.VERIFY)),
    db: Session = Depends(get_db),
):
    """
    Reconcile a profile's raised amount against its completed donations.

    A mismatch is a data integrity fault and is reported as a server error.
    """
    amount_raised = ledger.verify_ledger(db, profile_id)
    profile = db.query(StudentProfile).filter(StudentProfile.id == profile_id).first()
    if profile is None:
        raise NotFound("Student profile not found")
    return LedgerResponse(
        profile_id=profile.id,
        funding_goal=profile.funding_goal,
        amount_raised=amount_raised,
    )
