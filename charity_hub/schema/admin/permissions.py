from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List
from uuid import UUID
from datetime import datetime


class PermissionCatalogResponse(BaseModel):
    groups: Dict[str, List[str]]
    permissions: List[str]


class UserPermissionsResponse(BaseModel):
    user_id: UUID
    role: str
    role_permissions: List[str]
    claims: List[str]
    effective_permissions: List[str]


class UpdatePermissionsRequest(BaseModel):
    permissions_to_add: List[str] = Field(default_factory=list)
    permissions_to_remove: List[str] = Field(default_factory=list)


class UpdatePermissionsResponse(BaseModel):
    user_id: UUID
    added: List[str]
    removed: List[str]


class PermissionAuditEntry(BaseModel):
    id: UUID
    actor_id: UUID
    target_user_id: UUID
    added: List[str]
    removed: List[str]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
