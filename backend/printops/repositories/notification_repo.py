"""Notification Repository - Data access for the email outbox

Entries are written here and picked up by the external mail transport.
"""
from typing import List
from pymongo.collection import Collection
from pymongo import ASCENDING

from .mongo_client import get_collection, to_document
from ..domain.models import EmailOutboxEntry
from ..utils.logger import get_logger

logger = get_logger(__name__)


class NotificationRepository:
    """Repository for email outbox operations"""

    def __init__(self):
        self._outbox: Collection = get_collection("notification_outbox")

    def create_entry(self, entry: EmailOutboxEntry) -> EmailOutboxEntry:
        """Queue an email in the outbox"""
        self._outbox.insert_one(to_document(entry, "notification_id"))
        logger.info(
            f"Queued email for {len(entry.recipient_ids)} recipient(s)",
            extra={"reminder_id": entry.reminder_id, "project_id": entry.project_id}
        )
        return entry

    def get_entries_for_reminder(self, reminder_id: str) -> List[EmailOutboxEntry]:
        cursor = self._outbox.find({"reminder_id": reminder_id}).sort("created_at", ASCENDING)
        entries = []
        for doc in cursor:
            doc.pop("_id", None)
            entries.append(EmailOutboxEntry.model_validate(doc))
        return entries
