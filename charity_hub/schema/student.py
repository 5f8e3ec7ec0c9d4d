from pydantic import BaseModel, ConfigDict
from typing import List, Optional
from uuid import UUID
from datetime import datetime
from decimal import Decimal


class StudentProfileResponse(BaseModel):
    """Public funding profile as shown in the student directory."""
    id: UUID
    full_name: str
    age: int
    location: str
    story: str
    academic_background: Optional[str]
    dream_career: Optional[str]
    photo_url: Optional[str]
    funding_goal: Decimal
    amount_raised: Decimal
    is_visible: bool
    created_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)


class StudentProfileDetailResponse(StudentProfileResponse):
    donor_count: int = 0
    gallery_image_urls: List[str] = []


class StudentProfileListResponse(BaseModel):
    items: List[StudentProfileResponse]
    total_count: int
    page: int
    page_size: int
