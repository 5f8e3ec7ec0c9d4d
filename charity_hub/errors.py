"""
Domain errors raised by the review workflow, the authorization layer and the
donation ledger.

Routers never catch these: ``main.py`` registers one exception handler that
renders ``{"detail": ...}`` with the error code in ``X-App-Error-Code``.
"""
from typing import Iterable, Optional

from fastapi import status


class WorkflowError(Exception):
    """Base class for errors returned to the caller."""

    code = "workflow_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Unauthorized(WorkflowError):
    code = "unauthorized"
    status_code = status.HTTP_403_FORBIDDEN


class InvalidTransition(WorkflowError):
    code = "invalid_transition"
    status_code = status.HTTP_409_CONFLICT


class ValidationFailed(WorkflowError):
    code = "validation_failed"
    status_code = 422

    def __init__(self, message: str, errors: Optional[list] = None):
        super().__init__(message)
        self.errors = errors or []


class AlreadyPosted(WorkflowError):
    code = "already_posted"
    status_code = status.HTTP_409_CONFLICT


class NotApproved(WorkflowError):
    code = "not_approved"
    status_code = status.HTTP_409_CONFLICT


class DuplicateProfile(WorkflowError):
    code = "duplicate_profile"
    status_code = status.HTTP_409_CONFLICT


class NotFound(WorkflowError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class InvalidCapability(WorkflowError):
    code = "invalid_capability"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, unknown: Iterable[str]):
        self.unknown = sorted(set(unknown))
        super().__init__(f"Unknown permissions: {', '.join(self.unknown)}")


class DataIntegrityError(Exception):
    """A persisted invariant was found broken. Requires operator intervention."""

    code = "data_integrity_fault"


class LedgerIntegrityError(DataIntegrityError):
    code = "ledger_integrity_fault"
