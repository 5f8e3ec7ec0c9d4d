from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional
from uuid import UUID
from datetime import datetime
from decimal import Decimal

from charity_hub.database.models.donation import DonationStatus


class DonationCreate(BaseModel):
    profile_id: UUID
    amount: Decimal = Field(..., gt=0, le=999_999_999, decimal_places=2)
    payment_method: str = Field("paypal", min_length=1, max_length=50)
    is_recurring: bool = False


class GuestDonationCreate(DonationCreate):
    donor_email: Optional[EmailStr] = None


class DonationCompleteRequest(BaseModel):
    transaction_id: Optional[str] = Field(None, max_length=200)


class DonationResponse(BaseModel):
    id: UUID
    profile_id: UUID
    donor_id: UUID
    amount: Decimal
    payment_method: str
    transaction_id: Optional[str]
    status: DonationStatus
    is_recurring: bool
    created_at: Optional[datetime]
    completed_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)


class LedgerResponse(BaseModel):
    """Result of reconciling a profile's total against its completed donations."""
    profile_id: UUID
    funding_goal: Decimal
    amount_raised: Decimal
    consistent: bool = True
