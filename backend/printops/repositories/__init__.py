"""Repositories - Data access layer"""
from .mongo_client import get_collection, get_database, create_indexes, health_check
from .project_repo import ProjectRepository
from .reminder_repo import ReminderRepository
from .inapp_notification_repo import InAppNotificationRepository
from .notification_repo import NotificationRepository

__all__ = [
    "get_collection",
    "get_database",
    "create_indexes",
    "health_check",
    "ProjectRepository",
    "ReminderRepository",
    "InAppNotificationRepository",
    "NotificationRepository",
]
