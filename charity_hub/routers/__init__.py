from fastapi import APIRouter
from charity_hub.routers.auth import auth_router
from charity_hub.routers.student import student_router
from charity_hub.routers.manager import manager_router
from charity_hub.routers.admin import admin_router
from charity_hub.routers.donations import donation_router
from charity_hub.routers.students import students_router

# Create API router with prefix
api_router = APIRouter(prefix="/api/v1")

# Include all routers
api_router.include_router(auth_router)
api_router.include_router(student_router)
api_router.include_router(manager_router)
api_router.include_router(admin_router)
api_router.include_router(donation_router)
api_router.include_router(students_router)
