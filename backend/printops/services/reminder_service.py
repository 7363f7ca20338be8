"""Reminder Service - Reminder management and the due-reminder sweep"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..config.settings import settings
from ..domain.models import ActorContext, Project, Reminder, ReminderChannels
from ..domain.enums import ReminderRepeat, ReminderStatus, ReminderTriggerMode
from ..domain.errors import ConcurrencyError, DomainError
from ..engine.permission_guard import PermissionGuard
from ..engine.reminder_rules import ReminderLimits, ReminderRules
from ..repositories.project_repo import ProjectRepository
from ..repositories.reminder_repo import ReminderRepository
from ..utils.idgen import generate_reminder_id
from ..utils.time import utc_now
from ..utils.logger import get_logger
from .notification_service import NotificationService

logger = get_logger(__name__)


class ReminderService:
    """Service for reminder operations"""

    def __init__(self):
        self.reminder_repo = ReminderRepository()
        self.project_repo = ProjectRepository()
        self.notification_service = NotificationService()
        self.permission_guard = PermissionGuard()
        self.rules = ReminderRules(ReminderLimits.from_settings(settings), self.permission_guard)

    # =========================================================================
    # Create & read
    # =========================================================================

    def create_reminder(
        self,
        actor: ActorContext,
        title: str,
        message: str = "",
        project_id: Optional[str] = None,
        trigger_mode: ReminderTriggerMode = ReminderTriggerMode.ABSOLUTE_TIME,
        remind_at: Optional[str] = None,
        repeat: ReminderRepeat = ReminderRepeat.NONE,
        watch_status: Optional[str] = None,
        delay_minutes: Optional[int] = None,
        condition_status: Optional[str] = None,
        timezone: str = "UTC",
        template_key: str = "custom",
        channels: Optional[ReminderChannels] = None,
        recipient_ids: Optional[List[str]] = None
    ) -> Reminder:
        project = None
        if project_id:
            project = self.project_repo.get_project_or_raise(project_id)
            self.permission_guard.check_can_access_project(actor, project)

        reminder = self.rules.build_reminder(
            reminder_id=generate_reminder_id(),
            actor=actor,
            now=utc_now(),
            title=title,
            message=message,
            trigger_mode=trigger_mode,
            remind_at=remind_at,
            repeat=repeat,
            watch_status=watch_status,
            delay_minutes=delay_minutes,
            condition_status=condition_status,
            timezone=timezone,
            template_key=template_key,
            channels=channels,
            recipient_ids=recipient_ids,
            project=project,
        )
        return self.reminder_repo.create_reminder(reminder)

    def list_reminders(
        self,
        actor: ActorContext,
        project_id: Optional[str] = None,
        include_completed: bool = False,
        status: Optional[ReminderStatus] = None
    ) -> List[Reminder]:
        return self.reminder_repo.list_for_user(
            actor.user_id,
            project_id=project_id,
            include_completed=include_completed,
            status=status
        )

    def get_reminder(self, reminder_id: str, actor: ActorContext) -> Reminder:
        reminder = self.reminder_repo.get_reminder_or_raise(reminder_id)
        self.permission_guard.check_can_act_on_reminder(actor, reminder)
        return reminder

    # =========================================================================
    # Act
    # =========================================================================

    def snooze(self, reminder_id: str, minutes: Optional[int], actor: ActorContext) -> Reminder:
        reminder = self.get_reminder(reminder_id, actor)
        snoozed = self.rules.snooze(reminder, minutes, utc_now())
        saved = self.reminder_repo.replace_reminder(snoozed, reminder.version)
        logger.info(
            f"Reminder {reminder_id} snoozed",
            extra={"reminder_id": reminder_id, "actor_email": actor.email, "action": "snooze"}
        )
        return saved

    def complete(self, reminder_id: str, actor: ActorContext) -> Reminder:
        reminder = self.get_reminder(reminder_id, actor)
        completed = self.rules.complete(reminder, utc_now())
        if completed is None:
            return reminder
        return self.reminder_repo.replace_reminder(completed, reminder.version)

    def cancel(self, reminder_id: str, actor: ActorContext) -> Reminder:
        reminder = self.get_reminder(reminder_id, actor)
        cancelled = self.rules.cancel(reminder, utc_now())
        if cancelled is None:
            return reminder
        return self.reminder_repo.replace_reminder(cancelled, reminder.version)

    # =========================================================================
    # Manage
    # =========================================================================

    def edit_reminder(self, reminder_id: str, updates: Dict[str, Any], actor: ActorContext) -> Reminder:
        reminder = self.reminder_repo.get_reminder_or_raise(reminder_id)
        self.permission_guard.check_can_manage_reminder(actor, reminder)

        project: Optional[Project] = None
        if reminder.project_id:
            project = self.project_repo.get_project(reminder.project_id)

        edited = self.rules.apply_edit(reminder, updates, actor, utc_now(), project)
        saved = self.reminder_repo.replace_reminder(edited, reminder.version)
        logger.info(
            f"Reminder {reminder_id} edited",
            extra={"reminder_id": reminder_id, "actor_email": actor.email, "action": "edit"}
        )
        return saved

    def delete_reminder(self, reminder_id: str, actor: ActorContext) -> None:
        reminder = self.reminder_repo.get_reminder_or_raise(reminder_id)
        self.permission_guard.check_can_manage_reminder(actor, reminder)
        self.rules.check_deletable(reminder)
        self.reminder_repo.delete_reminder(reminder_id, reminder.version)

    # =========================================================================
    # Sweep
    # =========================================================================

    def evaluate_due_reminders(self, now: Optional[datetime] = None) -> List[Reminder]:
        """
        One sweep pass

        Phase 1 matches stage reminders against their projects' current
        status; phase 2 fires everything whose trigger time has passed, so a
        reminder matched with no delay fires in the same pass. Every reminder
        is written with a compare-and-swap on its version; a lost race skips
        it until the next pass. Errors are isolated per reminder, and a
        reminder that cannot fire yet is deferred by the recheck interval.

        Returns:
            Reminders that fired in this pass
        """
        now = now or utc_now()
        batch_size = settings.reminder_batch_size

        self._activate_stage_reminders(now)
        fired = self._fire_due_reminders(now, batch_size)

        if fired:
            logger.info(f"Reminder sweep fired {len(fired)} reminder(s)", extra={"action": "sweep"})
        return fired

    def _activate_stage_reminders(self, now: datetime) -> None:
        waiting = self.reminder_repo.get_unmatched_stage_reminders()
        if not waiting:
            return
        projects = self.project_repo.get_projects_by_ids([r.project_id for r in waiting if r.project_id])

        for reminder in waiting:
            try:
                outcome = self.rules.activate_stage(reminder, projects.get(reminder.project_id), now)
                if outcome.reminder is None:
                    continue
                self.reminder_repo.replace_reminder(outcome.reminder, reminder.version)
                logger.info(
                    f"Stage reminder {reminder.reminder_id}: {outcome.reason}",
                    extra={"reminder_id": reminder.reminder_id, "project_id": reminder.project_id}
                )
            except ConcurrencyError:
                logger.debug(
                    f"Reminder {reminder.reminder_id} changed during sweep; retrying next pass",
                    extra={"reminder_id": reminder.reminder_id}
                )
            except Exception as e:
                self._record_failure(reminder, e, now)

    def _fire_due_reminders(self, now: datetime, batch_size: int) -> List[Reminder]:
        due = self.reminder_repo.get_due_reminders(now, limit=batch_size)
        if not due:
            return []
        projects = self.project_repo.get_projects_by_ids([r.project_id for r in due if r.project_id])

        fired: List[Reminder] = []
        for reminder in due:
            try:
                project = projects.get(reminder.project_id) if reminder.project_id else None
                outcome = self.rules.process_due(reminder, project, now)
                if outcome.reminder is None:
                    continue

                saved = self.reminder_repo.replace_reminder(outcome.reminder, reminder.version)
                if outcome.fired:
                    self.notification_service.notify_reminder_fired(saved, project)
                    fired.append(saved)
                else:
                    logger.info(
                        f"Reminder {reminder.reminder_id} not fired: {outcome.reason}",
                        extra={"reminder_id": reminder.reminder_id, "project_id": reminder.project_id}
                    )
            except ConcurrencyError:
                logger.debug(
                    f"Reminder {reminder.reminder_id} changed during sweep; retrying next pass",
                    extra={"reminder_id": reminder.reminder_id}
                )
            except Exception as e:
                self._record_failure(reminder, e, now, defer=True)
        return fired

    def _record_failure(
        self,
        reminder: Reminder,
        error: Exception,
        now: datetime,
        defer: bool = False
    ) -> None:
        """
        Log a per-reminder sweep failure and keep it on the record

        With `defer`, a reminder that is still due is pushed one recheck
        interval out so it stops occupying the head of the due batch.
        """
        logger.error(
            f"Error processing reminder {reminder.reminder_id}: {error}",
            extra={
                "reminder_id": reminder.reminder_id,
                "error_code": getattr(error, "error_code", type(error).__name__),
            },
            exc_info=not isinstance(error, DomainError)
        )
        try:
            latest = self.reminder_repo.get_reminder(reminder.reminder_id)
            if latest is None:
                return
            message = str(error)[:500]
            still_due = (
                latest.status == ReminderStatus.SCHEDULED
                and latest.next_trigger_at is not None
                and latest.next_trigger_at <= now
            )
            if defer and still_due:
                updated = self.rules.defer(latest, now, message)
            else:
                updated = latest.model_copy(update={"last_error": message, "updated_at": utc_now()})
            self.reminder_repo.replace_reminder(updated, latest.version)
        except Exception as e:
            logger.warning(
                f"Could not store sweep error on reminder {reminder.reminder_id}: {e}",
                extra={"reminder_id": reminder.reminder_id}
            )
