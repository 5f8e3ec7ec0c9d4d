from fastapi import APIRouter
from charity_hub.routers.manager.application import manager_application_router

# Create manager router with prefix
manager_router = APIRouter(prefix="/manager")

manager_router.include_router(manager_application_router)

__all__ = ["manager_router"]
