"""
Permission catalog.

Capability identifiers are opaque, stable strings grouped by resource. The
catalog seeds the role defaults and validates claim updates.
"""
from typing import Dict, Iterable, List

from charity_hub.errors import InvalidCapability


class PermissionsManagement:
    MANAGE = "permissions.manage"
    VIEW_AUDIT_LOG = "permissions.audit.view"


class Users:
    VIEW = "users.view"
    MANAGE = "users.manage"


class Students:
    VIEW = "students.view"
    MANAGE = "students.manage"
    APPROVE = "students.approve"


class Donations:
    CREATE = "donations.create"
    VIEW = "donations.view"
    VERIFY = "donations.verify"


class Progress:
    VIEW = "progress.view"
    MANAGE = "progress.manage"


class Reports:
    VIEW = "reports.view"
    MANAGE = "reports.manage"


class Messages:
    VIEW = "messages.view"
    MANAGE = "messages.manage"


class Notifications:
    VIEW = "notifications.view"
    MANAGE = "notifications.manage"


PERMISSION_GROUPS: Dict[str, List[str]] = {
    "permissions": [PermissionsManagement.MANAGE, PermissionsManagement.VIEW_AUDIT_LOG],
    "users": [Users.VIEW, Users.MANAGE],
    "students": [Students.VIEW, Students.MANAGE, Students.APPROVE],
    "donations": [Donations.CREATE, Donations.VIEW, Donations.VERIFY],
    "progress": [Progress.VIEW, Progress.MANAGE],
    "reports": [Reports.VIEW, Reports.MANAGE],
    "messages": [Messages.VIEW, Messages.MANAGE],
    "notifications": [Notifications.VIEW, Notifications.MANAGE],
}

ALL_PERMISSIONS: List[str] = list(
    dict.fromkeys(p for group in PERMISSION_GROUPS.values() for p in group)
)

_KNOWN = frozenset(ALL_PERMISSIONS)


def is_known_permission(value: str) -> bool:
    return value in _KNOWN


def validate_permissions(values: Iterable[str]) -> List[str]:
    """Return the de-duplicated values, or raise InvalidCapability if any is unknown."""
    values = list(dict.fromkeys(values))
    unknown = [v for v in values if v not in _KNOWN]
    if unknown:
        raise InvalidCapability(unknown)
    return values
