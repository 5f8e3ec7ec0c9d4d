from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import Optional
from uuid import UUID
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from charity_hub.authorization.catalog import Students
from charity_hub.authorization.evaluator import has_permission
from charity_hub.database.config.db import get_db
from charity_hub.database.models.application import StudentApplication
from charity_hub.database.models.auth import User, UserRole
from charity_hub.database.models.donation import Donation, DonationStatus
from charity_hub.database.models.student import StudentProfile
from charity_hub.schema.student import (
    StudentProfileDetailResponse,
    StudentProfileListResponse,
    StudentProfileResponse,
)
from charity_hub.utils.auth import get_optional_user, require_role

students_router = APIRouter(prefix="/students", tags=["Students"])


def _profile_detail(db: Session, profile: StudentProfile) -> StudentProfileDetailResponse:
    detail = StudentProfileDetailResponse.model_validate(profile)
    detail.donor_count = (
        db.query(func.count(func.distinct(Donation.donor_id)))
        .filter(Donation.profile_id == profile.id, Donation.status == DonationStatus.COMPLETED)
        .scalar()
    )
    application = (
        db.query(StudentApplication)
        .filter(StudentApplication.id == profile.source_application_id)
        .first()
    )
    if application is not None and application.gallery_image_urls:
        detail.gallery_image_urls = list(application.gallery_image_urls)
    return detail


@students_router.get("", response_model=StudentProfileListResponse)
def list_students(
    search: Optional[str] = Query(None, max_length=200),
    location: Optional[str] = Query(None, max_length=200),
    page: int = Query(1, ge=1),
    page_size: int = Query(12, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """
    Public directory of posted students. Hidden profiles are never listed.
    """
    query = db.query(StudentProfile).filter(StudentProfile.is_visible.is_(True))

    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                StudentProfile.full_name.ilike(pattern),
                StudentProfile.story.ilike(pattern),
                StudentProfile.dream_career.ilike(pattern),
            )
        )
    if location:
        query = query.filter(StudentProfile.location.ilike(f"%{location.strip()}%"))

    total_count = query.count()
    profiles = (
        query.order_by(StudentProfile.created_at.desc(), StudentProfile.id)
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )

    return StudentProfileListResponse(
        items=[StudentProfileResponse.model_validate(p) for p in profiles],
        total_count=total_count,
        page=page,
        page_size=page_size,
    )


@students_router.get("/my-profile", response_model=StudentProfileDetailResponse)
def get_my_profile(
    current_user: User = Depends(require_role(UserRole.STUDENT)),
    db: Session = Depends(get_db),
):
    """Profile of the current student, hidden or not."""
    profile = db.query(StudentProfile).filter(StudentProfile.user_id == current_user.id).first()
    if not profile:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="You do not have a public profile yet",
        )
    return _profile_detail(db, profile)


@students_router.get("/{profile_id}", response_model=StudentProfileDetailResponse)
def get_student(
    profile_id: UUID,
    current_user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    """
    Public profile page. Hidden profiles are only shown to staff holding
    students.manage.
    """
    profile = db.query(StudentProfile).filter(StudentProfile.id == profile_id).first()
    visible = profile is not None and (
        profile.is_visible
        or (current_user is not None and has_permission(db, current_user, Students.MANAGE))
    )
    if not visible:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Student not found",
        )
    return _profile_detail(db, profile)
