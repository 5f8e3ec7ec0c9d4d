from fastapi import APIRouter, Depends, status
from uuid import UUID

from charity_hub.database.models.auth import User, UserRole
from charity_hub.schema.application import ApplicationDetailResponse, ApplicationSubmit
from charity_hub.utils.application import application_detail
from charity_hub.utils.auth import get_current_user, require_role
from charity_hub.workflow.service import ApplicationWorkflow, get_application_workflow

application_router = APIRouter(
    prefix="/applications",
    tags=["Student - Application"],
)


@application_router.post(
    "", response_model=ApplicationDetailResponse, status_code=status.HTTP_201_CREATED
)
def submit_application(
    body: ApplicationSubmit,
    current_user: User = Depends(require_role(UserRole.STUDENT)),
    workflow: ApplicationWorkflow = Depends(get_application_workflow),
):
    """
    Submit a new application for review.

    Rejected with 409 while the student already has a pending, under review,
    incomplete or approved application.
    """
    application = workflow.submit_application(current_user, body)
    return application_detail(application)


@application_router.get("/me", response_model=ApplicationDetailResponse)
def get_my_application(
    current_user: User = Depends(get_current_user),
    workflow: ApplicationWorkflow = Depends(get_application_workflow),
):
    """Latest application of the current user."""
    return application_detail(workflow.get_my_application(current_user))


@application_router.get("/{application_id}", response_model=ApplicationDetailResponse)
def get_application(
    application_id: UUID,
    current_user: User = Depends(get_current_user),
    workflow: ApplicationWorkflow = Depends(get_application_workflow),
):
    return application_detail(workflow.get_application(application_id, current_user))


@application_router.put("/{application_id}/resubmit", response_model=ApplicationDetailResponse)
def resubmit_application(
    application_id: UUID,
    body: ApplicationSubmit,
    current_user: User = Depends(require_role(UserRole.STUDENT)),
    workflow: ApplicationWorkflow = Depends(get_application_workflow),
):
    """
    Resubmit an application that was marked incomplete.

    The whole payload is replaced and the application returns to pending.
    """
    application = workflow.resubmit(application_id, current_user, body)
    return application_detail(application)
