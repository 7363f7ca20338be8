"""API Routes module"""
from fastapi import APIRouter

from .projects import crud_router as project_crud_router, lifecycle_router as project_lifecycle_router
from .reminders import router as reminders_router
from .notifications import router as notifications_router

# Main API router
api_router = APIRouter()

api_router.include_router(project_crud_router, prefix="/projects", tags=["Projects"])
api_router.include_router(project_lifecycle_router, prefix="/projects", tags=["Projects"])
api_router.include_router(reminders_router, prefix="/reminders", tags=["Reminders"])
api_router.include_router(notifications_router, prefix="/notifications", tags=["Notifications"])

__all__ = ["api_router"]
