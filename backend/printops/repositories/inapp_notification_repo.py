"""In-App Notification Repository - Data access for notification bell"""
from typing import Any, Dict, List, Optional
from pymongo.collection import Collection
from pymongo import DESCENDING

from .mongo_client import get_collection, to_document
from ..domain.models import InAppNotification
from ..domain.enums import InAppNotificationCategory
from ..domain.errors import NotFoundError
from ..utils.logger import get_logger
from ..utils.time import utc_now
from ..utils.idgen import generate_notification_id

logger = get_logger(__name__)


class InAppNotificationRepository:
    """Repository for in-app notification operations"""

    COLLECTION_NAME = "inapp_notifications"

    def __init__(self):
        self._collection: Collection = get_collection(self.COLLECTION_NAME)

    def create_notification(
        self,
        recipient_id: str,
        category: InAppNotificationCategory,
        title: str,
        message: str,
        project_id: Optional[str] = None,
        reminder_id: Optional[str] = None
    ) -> InAppNotification:
        """Create a new in-app notification"""
        notification = InAppNotification(
            notification_id=generate_notification_id(),
            recipient_id=recipient_id,
            category=category,
            title=title,
            message=message,
            project_id=project_id,
            reminder_id=reminder_id,
            is_read=False,
            created_at=utc_now()
        )

        self._collection.insert_one(to_document(notification, "notification_id"))

        logger.info(
            f"Created in-app notification for {recipient_id}",
            extra={"project_id": project_id, "reminder_id": reminder_id}
        )
        return notification

    def get_notifications_for_user(
        self,
        recipient_id: str,
        skip: int = 0,
        limit: int = 50,
        unread_only: bool = False
    ) -> List[InAppNotification]:
        """Get notifications for a user, newest first"""
        query: Dict[str, Any] = {"recipient_id": recipient_id}
        if unread_only:
            query["is_read"] = False

        cursor = self._collection.find(query).sort("created_at", DESCENDING).skip(skip).limit(limit)

        notifications = []
        for doc in cursor:
            doc.pop("_id", None)
            notifications.append(InAppNotification.model_validate(doc))
        return notifications

    def get_unread_count(self, recipient_id: str) -> int:
        """Get count of unread notifications for a user"""
        return self._collection.count_documents({"recipient_id": recipient_id, "is_read": False})

    def mark_as_read(self, notification_id: str, recipient_id: str) -> InAppNotification:
        """Mark a notification as read"""
        result = self._collection.find_one_and_update(
            {"notification_id": notification_id, "recipient_id": recipient_id},
            {"$set": {"is_read": True, "read_at": utc_now()}},
            return_document=True
        )

        if result is None:
            raise NotFoundError(f"Notification {notification_id} not found")

        result.pop("_id", None)
        return InAppNotification.model_validate(result)
