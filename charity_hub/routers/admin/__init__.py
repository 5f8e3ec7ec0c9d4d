from fastapi import APIRouter
from charity_hub.routers.admin.application import admin_application_router
from charity_hub.routers.admin.permissions import permissions_router

# Create admin router with prefix
admin_router = APIRouter(prefix="/admin")

# Include all admin routers
admin_router.include_router(admin_application_router)
admin_router.include_router(permissions_router)

__all__ = ["admin_router"]
