"""Reminder Repository - Data access for reminders"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pymongo.collection import Collection
from pymongo import ASCENDING, DESCENDING, ReturnDocument

from .mongo_client import get_collection, to_document
from ..domain.models import Reminder
from ..domain.enums import ReminderStatus, ReminderTriggerMode
from ..domain.errors import ConcurrencyError, ReminderNotFoundError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class ReminderRepository:
    """Repository for reminder operations"""

    COLLECTION_NAME = "reminders"

    def __init__(self):
        self._collection: Collection = get_collection(self.COLLECTION_NAME)

    def create_reminder(self, reminder: Reminder) -> Reminder:
        """Create a new reminder"""
        self._collection.insert_one(to_document(reminder, "reminder_id"))
        logger.info(
            f"Created reminder: {reminder.reminder_id}",
            extra={"reminder_id": reminder.reminder_id, "project_id": reminder.project_id}
        )
        return reminder

    def get_reminder(self, reminder_id: str) -> Optional[Reminder]:
        """Get reminder by ID"""
        doc = self._collection.find_one({"reminder_id": reminder_id})
        if doc:
            doc.pop("_id", None)
            return Reminder.model_validate(doc)
        return None

    def get_reminder_or_raise(self, reminder_id: str) -> Reminder:
        reminder = self.get_reminder(reminder_id)
        if not reminder:
            raise ReminderNotFoundError(f"Reminder {reminder_id} not found")
        return reminder

    def replace_reminder(self, reminder: Reminder, expected_version: int) -> Reminder:
        """
        Compare-and-swap write of a reminder

        Raises:
            ConcurrencyError: The stored version moved on
            ReminderNotFoundError: The reminder is gone
        """
        stored = reminder.model_copy(update={"version": expected_version + 1})
        result = self._collection.find_one_and_replace(
            {"reminder_id": reminder.reminder_id, "version": expected_version},
            to_document(stored, "reminder_id"),
            return_document=ReturnDocument.AFTER
        )

        if result is None:
            exists = self._collection.find_one({"reminder_id": reminder.reminder_id}, {"_id": 1})
            if exists:
                raise ConcurrencyError(
                    f"Reminder {reminder.reminder_id} was modified. Please refresh and try again.",
                    details={"expected_version": expected_version}
                )
            raise ReminderNotFoundError(f"Reminder {reminder.reminder_id} not found")

        result.pop("_id", None)
        return Reminder.model_validate(result)

    def delete_reminder(self, reminder_id: str, expected_version: int) -> None:
        """Delete a reminder if it was not modified since it was read"""
        result = self._collection.delete_one({"reminder_id": reminder_id, "version": expected_version})
        if result.deleted_count == 0:
            if self._collection.find_one({"reminder_id": reminder_id}, {"_id": 1}):
                raise ConcurrencyError(
                    f"Reminder {reminder_id} was modified. Please refresh and try again.",
                    details={"expected_version": expected_version}
                )
            raise ReminderNotFoundError(f"Reminder {reminder_id} not found")
        logger.info(f"Deleted reminder: {reminder_id}", extra={"reminder_id": reminder_id})

    def list_for_user(
        self,
        user_id: str,
        project_id: Optional[str] = None,
        include_completed: bool = False,
        status: Optional[ReminderStatus] = None,
        limit: int = 300
    ) -> List[Reminder]:
        """
        Reminders the user created or receives

        Without a status filter only scheduled, active reminders are returned
        unless include_completed is set.
        """
        query: Dict[str, Any] = {
            "$or": [{"created_by": user_id}, {"recipients": user_id}]
        }
        if project_id:
            query["project_id"] = project_id
        if status:
            query["status"] = status.value
        elif not include_completed:
            query["status"] = ReminderStatus.SCHEDULED.value
            query["is_active"] = True

        cursor = (
            self._collection.find(query)
            .sort([("next_trigger_at", ASCENDING), ("created_at", DESCENDING)])
            .limit(limit)
        )
        reminders = []
        for doc in cursor:
            doc.pop("_id", None)
            reminders.append(Reminder.model_validate(doc))
        return reminders

    # =========================================================================
    # Sweep queries
    # =========================================================================

    def get_unmatched_stage_reminders(self) -> List[Reminder]:
        """Scheduled stage reminders still waiting for their watched status"""
        cursor = self._collection.find({
            "status": ReminderStatus.SCHEDULED.value,
            "is_active": True,
            "trigger_mode": ReminderTriggerMode.STAGE_BASED.value,
            "stage_matched_at": None,
        }).sort("created_at", ASCENDING)
        return [self._from_doc(doc) for doc in cursor]

    def get_due_reminders(self, now: datetime, limit: int = 50) -> List[Reminder]:
        """Scheduled reminders whose trigger time has passed, oldest first"""
        cursor = self._collection.find({
            "status": ReminderStatus.SCHEDULED.value,
            "is_active": True,
            "next_trigger_at": {"$ne": None, "$lte": now},
        }).sort("next_trigger_at", ASCENDING).limit(limit)
        return [self._from_doc(doc) for doc in cursor]

    @staticmethod
    def _from_doc(doc: Dict[str, Any]) -> Reminder:
        doc.pop("_id", None)
        return Reminder.model_validate(doc)
