# Import models in dependency order
from charity_hub.database.models.auth import (
    User,
    UserRole,
    UserPermission,
    PermissionAuditLog,
)
from charity_hub.database.models.student import StudentProfile
from charity_hub.database.models.application import (
    StudentApplication,
    ApplicationStatus,
    ApplicationStatusHistory,
)
from charity_hub.database.models.donation import Donation, DonationStatus
from charity_hub.database.models.notification import Notification

__all__ = [
    "User",
    "UserRole",
    "UserPermission",
    "PermissionAuditLog",
    "StudentProfile",
    "StudentApplication",
    "ApplicationStatus",
    "ApplicationStatusHistory",
    "Donation",
    "DonationStatus",
    "Notification",
]
