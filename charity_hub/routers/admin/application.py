from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional
from uuid import UUID

from charity_hub.authorization.catalog import Students
from charity_hub.authorization.evaluator import require_permission
from charity_hub.database.models.application import ApplicationStatus
from charity_hub.database.models.auth import User
from charity_hub.schema.application import (
    ApplicationActionRequest,
    ApplicationDetailResponse,
    ApplicationResponse,
    PostProfileRequest,
    PostProfileResponse,
)
from charity_hub.utils.application import application_detail
from charity_hub.utils.auth import get_current_user
from charity_hub.workflow.service import ApplicationWorkflow, get_application_workflow

admin_application_router = APIRouter(
    prefix="/applications",
    tags=["Admin - Application Approval"],
)


@admin_application_router.get("", response_model=List[ApplicationResponse])
def list_applications(
    status_filter: Optional[ApplicationStatus] = Query(ApplicationStatus.UNDER_REVIEW, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_user: User = Depends(require_permission(Students.APPROVE)),
    workflow: ApplicationWorkflow = Depends(get_application_workflow),
):
    """List applications awaiting a decision (under review unless another status is given)."""
    return workflow.list_applications(current_user, status_filter, skip, limit)


@admin_application_router.put("/{application_id}/approve", response_model=ApplicationDetailResponse)
def approve_application(
    application_id: UUID,
    current_user: User = Depends(get_current_user),
    workflow: ApplicationWorkflow = Depends(get_application_workflow),
):
    return application_detail(workflow.approve(application_id, current_user))


@admin_application_router.put("/{application_id}/reject", response_model=ApplicationDetailResponse)
def reject_application(
    application_id: UUID,
    body: ApplicationActionRequest,
    current_user: User = Depends(get_current_user),
    workflow: ApplicationWorkflow = Depends(get_application_workflow),
):
    application = workflow.reject(application_id, current_user, body.reason)
    return application_detail(application)


@admin_application_router.put(
    "/{application_id}/mark-incomplete", response_model=ApplicationDetailResponse
)
def mark_incomplete(
    application_id: UUID,
    body: ApplicationActionRequest,
    current_user: User = Depends(get_current_user),
    workflow: ApplicationWorkflow = Depends(get_application_workflow),
):
    application = workflow.mark_incomplete(application_id, current_user, body.reason)
    return application_detail(application)


@admin_application_router.post(
    "/{application_id}/post",
    response_model=PostProfileResponse,
    status_code=status.HTTP_201_CREATED,
)
def post_application(
    application_id: UUID,
    body: Optional[PostProfileRequest] = None,
    current_user: User = Depends(get_current_user),
    workflow: ApplicationWorkflow = Depends(get_application_workflow),
):
    """
    Publish an approved application as a public student profile.

    Optional overrides replace the requested funding amount and the residency
    shown as the profile location.
    """
    profile_id = workflow.post_as_profile(application_id, current_user, body)
    return PostProfileResponse(profile_id=profile_id)
