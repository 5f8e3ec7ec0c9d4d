from pydantic import BaseModel, ConfigDict, Field, EmailStr, field_validator
from typing import Optional, List
from uuid import UUID
from datetime import datetime
from decimal import Decimal

from charity_hub.database.models.application import ApplicationStatus


# ==================== SUBMISSION ====================

class ApplicationSubmit(BaseModel):
    """Full application payload. Used for both submission and resubmission."""

    # Personal Information
    full_name: str = Field(..., min_length=1, max_length=200, description="Full name")
    age: int = Field(..., ge=16, le=100, description="Age in years")
    place_of_birth: str = Field(..., min_length=1, max_length=200)
    current_residency: str = Field(..., min_length=1, max_length=500)
    email: EmailStr = Field(..., description="Contact email address")
    phone_number: Optional[str] = Field(None, max_length=20)

    # Family Information
    father_name: str = Field(..., min_length=1, max_length=200)
    mother_name: str = Field(..., min_length=1, max_length=200)
    parents_annual_salary: Decimal = Field(..., ge=0, le=999_999_999, decimal_places=2)
    family_situation: Optional[str] = Field(None, max_length=1000)

    # Academic Information
    personal_story: str = Field(..., min_length=100, max_length=2000)
    academic_background: str = Field(..., min_length=50, max_length=1000)
    current_education_level: Optional[str] = Field(None, max_length=200)
    field_of_study: Optional[str] = Field(None, max_length=200)
    dream_career: Optional[str] = Field(None, max_length=200)

    # Funding Information
    requested_funding_amount: Decimal = Field(..., ge=100, le=999_999, decimal_places=2)
    funding_purpose: Optional[str] = Field(None, max_length=1000)

    # Documents are uploaded separately; only their URLs are kept
    profile_image_url: Optional[str] = Field(None, max_length=500)
    proof_document_urls: Optional[List[str]] = None
    gallery_image_urls: Optional[List[str]] = None

    @field_validator('phone_number')
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        """Digits with optional leading +, spaces and dashes."""
        if v is None or v == "":
            return None
        digits = v.replace(" ", "").replace("-", "")
        if digits.startswith("+"):
            digits = digits[1:]
        if not digits.isdigit() or len(digits) < 7:
            raise ValueError('Phone number must contain at least 7 digits')
        return v


class ApplicationActionRequest(BaseModel):
    """Reason accompanying reject / mark-incomplete."""
    reason: Optional[str] = Field(None, max_length=1000)


class PostProfileRequest(BaseModel):
    """Optional overrides applied when posting an approved application."""
    funding_goal: Optional[Decimal] = Field(None, gt=0, le=999_999_999, decimal_places=2)
    location: Optional[str] = Field(None, min_length=1, max_length=500)


class PostProfileResponse(BaseModel):
    message: str = "Student posted successfully"
    profile_id: UUID


# ==================== RESPONSES ====================

class StatusHistoryResponse(BaseModel):
    action: str
    from_status: Optional[ApplicationStatus]
    to_status: ApplicationStatus
    changed_by: Optional[UUID]
    notes: Optional[str]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ApplicationResponse(BaseModel):
    id: UUID
    user_id: UUID
    full_name: str
    age: int
    place_of_birth: str
    current_residency: str
    email: str
    phone_number: Optional[str]
    father_name: str
    mother_name: str
    parents_annual_salary: Decimal
    family_situation: Optional[str]
    personal_story: str
    academic_background: str
    current_education_level: Optional[str]
    field_of_study: Optional[str]
    dream_career: Optional[str]
    profile_image_url: Optional[str]
    proof_document_urls: Optional[List[str]]
    gallery_image_urls: Optional[List[str]]
    requested_funding_amount: Decimal
    funding_purpose: Optional[str]
    status: ApplicationStatus
    rejection_reason: Optional[str]
    reviewed_by_manager_id: Optional[UUID]
    reviewed_by_manager_at: Optional[datetime]
    approved_by_admin_id: Optional[UUID]
    approved_by_admin_at: Optional[datetime]
    is_posted: bool
    profile_id: Optional[UUID]
    submitted_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ApplicationDetailResponse(ApplicationResponse):
    available_actions: List[str] = []
    status_history: List[StatusHistoryResponse] = []
