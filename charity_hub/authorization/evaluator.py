"""
Capability resolution.

A user's effective capabilities are the defaults implied by their role plus
any explicitly granted permission claims. Claims only ever add; a capability
is withheld simply by not being present.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, FrozenSet, Iterable, List, Set, Tuple
from uuid import UUID

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from charity_hub.authorization.catalog import (
    ALL_PERMISSIONS,
    Donations,
    Messages,
    Notifications,
    PermissionsManagement,
    Progress,
    Reports,
    Students,
    Users,
    validate_permissions,
)
from charity_hub.database.config.db import get_db
from charity_hub.database.models.auth import (
    PermissionAuditLog,
    User,
    UserPermission,
    UserRole,
)
from charity_hub.errors import NotFound, Unauthorized
from charity_hub.utils.auth import get_current_user

logger = logging.getLogger(__name__)


ROLE_PERMISSIONS: Dict[UserRole, FrozenSet[str]] = {
    UserRole.ADMIN: frozenset(ALL_PERMISSIONS),
    UserRole.MANAGER: frozenset({
        Users.VIEW,
        Students.VIEW, Students.MANAGE,
        Donations.VIEW, Donations.VERIFY,
        Progress.VIEW,
        Reports.VIEW,
        Messages.VIEW, Messages.MANAGE,
        Notifications.VIEW, Notifications.MANAGE,
    }),
    UserRole.DONOR: frozenset({
        Donations.CREATE,
        Donations.VIEW,
        Progress.VIEW,
        Notifications.VIEW,
        Messages.VIEW,
    }),
    UserRole.STUDENT: frozenset({
        Students.VIEW,
        Progress.VIEW, Progress.MANAGE,
        Messages.VIEW,
        Notifications.VIEW,
    }),
}


def role_permissions(role) -> FrozenSet[str]:
    try:
        return ROLE_PERMISSIONS[UserRole(role)]
    except ValueError:
        return frozenset()


def get_claims(db: Session, user_id: UUID) -> Set[str]:
    rows = db.query(UserPermission.permission).filter(UserPermission.user_id == user_id).all()
    return {row[0] for row in rows}


def get_effective_permissions(db: Session, user: User) -> Set[str]:
    """Role defaults plus explicit claims."""
    return set(role_permissions(user.role)) | get_claims(db, user.id)


def has_permission(db: Session, user: User, permission: str) -> bool:
    if permission in role_permissions(user.role):
        return True
    return (
        db.query(UserPermission.id)
        .filter(UserPermission.user_id == user.id, UserPermission.permission == permission)
        .first()
        is not None
    )


def ensure_permission(db: Session, user: User, permission: str) -> None:
    """Raise Unauthorized unless the user holds the permission."""
    if not has_permission(db, user, permission):
        raise Unauthorized(f"Permission '{permission}' required")


def require_permission(permission: str):
    """
    Dependency function to require a capability.
    Usage: current_user: User = Depends(require_permission(Students.MANAGE))
    """
    def permission_checker(
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
    ) -> User:
        if not has_permission(db, current_user, permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required permission: {permission}",
            )
        return current_user

    return permission_checker


def update_permissions(
    db: Session,
    actor: User,
    target_user_id: UUID,
    grants: Iterable[str] = (),
    revokes: Iterable[str] = (),
) -> Tuple[List[str], List[str]]:
    """
    Grant and revoke explicit permission claims for a user.

    Every requested capability must be known to the catalog; otherwise nothing
    is written. Grants already held and revokes not held are ignored. When
    anything changed, one audit row is appended in the same commit.

    Returns:
        (added, removed) lists of capabilities actually changed.
    """
    ensure_permission(db, actor, PermissionsManagement.MANAGE)
    grants = validate_permissions(grants)
    revokes = validate_permissions(revokes)

    target = db.query(User).filter(User.id == target_user_id).first()
    if target is None:
        raise NotFound("User not found")

    existing = {p.permission: p for p in target.permissions}
    added: List[str] = []
    removed: List[str] = []

    for permission in grants:
        if permission not in existing:
            target.permissions.append(UserPermission(permission=permission))
            added.append(permission)

    for permission in revokes:
        claim = existing.get(permission)
        if claim is not None and permission not in added:
            target.permissions.remove(claim)
            removed.append(permission)

    if added or removed:
        db.add(
            PermissionAuditLog(
                actor_id=actor.id,
                target_user_id=target.id,
                added=added,
                removed=removed,
                created_at=datetime.now(timezone.utc),
            )
        )
        db.commit()
        logger.info(
            "Permissions of user %s changed by %s: added=%s removed=%s",
            target.id, actor.id, added, removed,
        )

    return added, removed


def list_audit_log(db: Session, actor: User, limit: int = 100) -> List[PermissionAuditLog]:
    ensure_permission(db, actor, PermissionsManagement.VIEW_AUDIT_LOG)
    return (
        db.query(PermissionAuditLog)
        .order_by(PermissionAuditLog.created_at.desc())
        .limit(limit)
        .all()
    )
