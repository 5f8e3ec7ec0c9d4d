"""
Application-related utility functions
"""
from charity_hub.database.models.application import StudentApplication
from charity_hub.schema.application import ApplicationDetailResponse, StatusHistoryResponse
from charity_hub.workflow.engine import available_actions


def application_detail(application: StudentApplication) -> ApplicationDetailResponse:
    """
    Build the detail response for an application, including the actions its
    current status allows and its status history.

    Args:
        application: Loaded StudentApplication

    Returns:
        ApplicationDetailResponse
    """
    detail = ApplicationDetailResponse.model_validate(application)
    detail.available_actions = available_actions(application)
    detail.status_history = [
        StatusHistoryResponse.model_validate(entry) for entry in application.status_history
    ]
    return detail
