"""Notification Service - In-app notifications and the email outbox

Delivery of queued emails is handled by an external transport; this service
only decides who is notified and writes the records.
"""
from typing import List, Optional

from ..domain.models import (
    ActorContext, EmailOutboxEntry, InAppNotification, Project, Reminder
)
from ..domain.enums import InAppNotificationCategory, NotificationStatus
from ..repositories.notification_repo import NotificationRepository
from ..repositories.inapp_notification_repo import InAppNotificationRepository
from ..utils.idgen import generate_notification_id
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


class NotificationService:
    """Service for creating and reading notifications"""

    def __init__(self):
        self.repo = NotificationRepository()
        self.inapp_repo = InAppNotificationRepository()

    # =========================================================================
    # Reminders
    # =========================================================================

    def notify_reminder_fired(self, reminder: Reminder, project: Optional[Project] = None) -> int:
        """
        Fan a fired reminder out to its channels

        One in-app notification per recipient when in-app is enabled, and a
        single outbox entry covering every recipient when email is enabled.

        Returns:
            Number of records written
        """
        title = f"Reminder: {reminder.title}"
        message = reminder.message or self._default_reminder_message(reminder, project)
        written = 0

        if reminder.channels.in_app:
            for recipient_id in reminder.recipients:
                self.inapp_repo.create_notification(
                    recipient_id=recipient_id,
                    category=InAppNotificationCategory.REMINDER,
                    title=title,
                    message=message,
                    project_id=reminder.project_id,
                    reminder_id=reminder.reminder_id
                )
                written += 1

        if reminder.channels.email and reminder.recipients:
            self.repo.create_entry(EmailOutboxEntry(
                notification_id=generate_notification_id(),
                recipient_ids=list(reminder.recipients),
                title=title,
                message=message,
                project_id=reminder.project_id,
                reminder_id=reminder.reminder_id,
                status=NotificationStatus.PENDING,
                created_at=utc_now()
            ))
            written += 1

        logger.info(
            f"Reminder fired to {len(reminder.recipients)} recipient(s)",
            extra={"reminder_id": reminder.reminder_id, "project_id": reminder.project_id}
        )
        return written

    @staticmethod
    def _default_reminder_message(reminder: Reminder, project: Optional[Project]) -> str:
        if project is None:
            return reminder.title
        return f"{project.project_name} ({project.order_id}) is {project.status.value}"

    # =========================================================================
    # Projects
    # =========================================================================

    def notify_status_change(
        self,
        project: Project,
        from_status: str,
        actor: ActorContext
    ) -> None:
        """
        Tell the project's creator that someone else moved it

        Failures are logged and never fail the transition itself.
        """
        recipient_id = project.created_by.user_id
        if recipient_id == actor.user_id:
            return
        try:
            self.inapp_repo.create_notification(
                recipient_id=recipient_id,
                category=InAppNotificationCategory.STATUS_CHANGE,
                title=f"{project.project_name} is now {project.status.value}",
                message=f"{actor.display_name} moved {project.order_id} from {from_status} to {project.status.value}",
                project_id=project.project_id
            )
        except Exception as e:
            logger.warning(
                f"Failed to create status notification: {e}",
                extra={"project_id": project.project_id}
            )

    # =========================================================================
    # Notification bell
    # =========================================================================

    def list_notifications(
        self,
        actor: ActorContext,
        unread_only: bool = False,
        skip: int = 0,
        limit: int = 50
    ) -> List[InAppNotification]:
        return self.inapp_repo.get_notifications_for_user(
            actor.user_id, skip=skip, limit=limit, unread_only=unread_only
        )

    def unread_count(self, actor: ActorContext) -> int:
        return self.inapp_repo.get_unread_count(actor.user_id)

    def mark_read(self, notification_id: str, actor: ActorContext) -> InAppNotification:
        return self.inapp_repo.mark_as_read(notification_id, actor.user_id)
