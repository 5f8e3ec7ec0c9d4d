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
)
from charity_hub.utils.application import application_detail
from charity_hub.utils.auth import get_current_user
from charity_hub.workflow.service import ApplicationWorkflow, get_application_workflow

manager_application_router = APIRouter(
    prefix="/applications",
    tags=["Manager - Application Review"],
)


@manager_application_router.get("", response_model=List[ApplicationResponse])
def list_applications(
    status_filter: Optional[ApplicationStatus] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_user: User = Depends(require_permission(Students.MANAGE)),
    workflow: ApplicationWorkflow = Depends(get_application_workflow),
):
    """List applications, newest first, optionally filtered by status."""
    return workflow.list_applications(current_user, status_filter, skip, limit)


@manager_application_router.put("/{application_id}/review", response_model=ApplicationDetailResponse)
def mark_under_review(
    application_id: UUID,
    current_user: User = Depends(get_current_user),
    workflow: ApplicationWorkflow = Depends(get_application_workflow),
):
    """Forward a pending application to the administrators."""
    return application_detail(workflow.mark_under_review(application_id, current_user))


@manager_application_router.put(
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


@manager_application_router.put("/{application_id}/reject", response_model=ApplicationDetailResponse)
def reject_application(
    application_id: UUID,
    body: ApplicationActionRequest,
    current_user: User = Depends(get_current_user),
    workflow: ApplicationWorkflow = Depends(get_application_workflow),
):
    application = workflow.reject(application_id, current_user, body.reason)
    return application_detail(application)


@manager_application_router.delete("/{application_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_application(
    application_id: UUID,
    current_user: User = Depends(get_current_user),
    workflow: ApplicationWorkflow = Depends(get_application_workflow),
):
    """Permanently delete a rejected application."""
    workflow.delete_rejected(application_id, current_user)
