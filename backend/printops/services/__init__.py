"""Services - Business logic layer"""
from .project_service import ProjectService
from .reminder_service import ReminderService
from .notification_service import NotificationService

__all__ = [
    "ProjectService",
    "ReminderService",
    "NotificationService",
]
