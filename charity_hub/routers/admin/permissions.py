from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import List
from uuid import UUID
from sqlalchemy.orm import Session

from charity_hub.authorization.catalog import (
    ALL_PERMISSIONS,
    PERMISSION_GROUPS,
    PermissionsManagement,
)
from charity_hub.authorization.evaluator import (
    get_claims,
    get_effective_permissions,
    list_audit_log,
    require_permission,
    role_permissions,
    update_permissions,
)
from charity_hub.database.config.db import get_db
from charity_hub.database.models.auth import User
from charity_hub.schema.admin.permissions import (
    PermissionAuditEntry,
    PermissionCatalogResponse,
    UpdatePermissionsRequest,
    UpdatePermissionsResponse,
    UserPermissionsResponse,
)
from charity_hub.utils.auth import get_current_user

permissions_router = APIRouter(
    prefix="/permissions",
    tags=["Admin - Permissions"],
)


@permissions_router.get("/catalog", response_model=PermissionCatalogResponse)
def get_catalog(
    current_user: User = Depends(require_permission(PermissionsManagement.MANAGE)),
):
    """All grantable permissions, grouped by resource."""
    return PermissionCatalogResponse(groups=PERMISSION_GROUPS, permissions=ALL_PERMISSIONS)


@permissions_router.get("/audit", response_model=List[PermissionAuditEntry])
def get_audit_log(
    limit: int = Query(100, ge=1, le=1000),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Permission changes, newest first."""
    return list_audit_log(db, current_user, limit)


@permissions_router.get("/{user_id}", response_model=UserPermissionsResponse)
def get_user_permissions(
    user_id: UUID,
    current_user: User = Depends(require_permission(PermissionsManagement.MANAGE)),
    db: Session = Depends(get_db),
):
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )

    return UserPermissionsResponse(
        user_id=user.id,
        role=user.role,
        role_permissions=sorted(role_permissions(user.role)),
        claims=sorted(get_claims(db, user.id)),
        effective_permissions=sorted(get_effective_permissions(db, user)),
    )


@permissions_router.post("/{user_id}", response_model=UpdatePermissionsResponse)
def change_user_permissions(
    user_id: UUID,
    body: UpdatePermissionsRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Grant and revoke explicit permissions.

    Unknown permission names reject the whole request. Every effective change
    is written to the audit log.
    """
    added, removed = update_permissions(
        db,
        current_user,
        user_id,
        grants=body.permissions_to_add,
        revokes=body.permissions_to_remove,
    )
    return UpdatePermissionsResponse(user_id=user_id, added=added, removed=removed)
