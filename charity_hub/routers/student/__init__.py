from fastapi import APIRouter
from charity_hub.routers.student.application import application_router

# Student routes live directly under the API prefix
student_router = APIRouter()

student_router.include_router(application_router)

__all__ = ["student_router"]
