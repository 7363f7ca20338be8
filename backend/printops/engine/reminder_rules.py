"""Reminder Rules - Validation and state changes for reminders

Pure functions over Reminder models. Persistence, notification fan-out and
compare-and-swap retries belong to ReminderService.
"""
from datetime import datetime
from typing import Any, Dict, Iterable, NamedTuple, Optional, Union

from ..domain.enums import ProjectStatus, ReminderRepeat, ReminderStatus, ReminderTriggerMode
from ..domain.errors import (
    InvalidStateError,
    InvalidTimeError,
    NoConcreteTriggerError,
    NotEditableError,
    CannotDeleteScheduledError,
    PermissionDeniedError,
    ValidationError,
)
from ..domain.models import ActorContext, Project, Reminder, ReminderChannels
from ..utils.time import add_minutes, add_period, is_known_timezone, parse_iso, to_naive_utc
from .permission_guard import PermissionGuard
from . import status_flow

TITLE_MAX_LENGTH = 140
MESSAGE_MAX_LENGTH = 2000

MIN_RECHECK_MINUTES = 5

TRIGGER_FIELDS = ("trigger_mode", "remind_at", "watch_status", "delay_minutes")


class ReminderLimits(NamedTuple):
    max_delay_minutes: int = 60 * 24 * 90
    default_snooze_minutes: int = 60
    max_snooze_minutes: int = 60 * 24 * 14
    recheck_minutes: int = 60

    @classmethod
    def from_settings(cls, settings: Any) -> "ReminderLimits":
        return cls(
            max_delay_minutes=settings.reminder_max_delay_minutes,
            default_snooze_minutes=settings.reminder_default_snooze_minutes,
            max_snooze_minutes=settings.reminder_max_snooze_minutes,
            recheck_minutes=max(MIN_RECHECK_MINUTES, settings.reminder_recheck_minutes),
        )


class SweepOutcome(NamedTuple):
    """What one sweep step decided for a reminder

    `reminder` is the state to persist, or None when nothing changes.
    """
    reminder: Optional[Reminder]
    fired: bool
    reason: str


class ReminderRules:
    """
    Reminder state machine

    scheduled --fire (no repeat)--> completed
    scheduled --fire (repeat)-----> scheduled (re-armed)
    scheduled --defer-------------> scheduled (next_trigger_at + recheck)
    scheduled --complete----------> completed
    scheduled --cancel------------> cancelled
    completed/cancelled --delete--> gone
    """

    def __init__(
        self,
        limits: Optional[ReminderLimits] = None,
        permission_guard: Optional[PermissionGuard] = None
    ):
        self.limits = limits or ReminderLimits()
        self.permission_guard = permission_guard or PermissionGuard()

    # =========================================================================
    # Create
    # =========================================================================

    def build_reminder(
        self,
        *,
        reminder_id: str,
        actor: ActorContext,
        now: datetime,
        title: str,
        message: str = "",
        trigger_mode: ReminderTriggerMode = ReminderTriggerMode.ABSOLUTE_TIME,
        remind_at: Union[str, datetime, None] = None,
        repeat: ReminderRepeat = ReminderRepeat.NONE,
        watch_status: Optional[str] = None,
        delay_minutes: Optional[int] = None,
        condition_status: Optional[str] = None,
        timezone: str = "UTC",
        template_key: str = "custom",
        channels: Optional[ReminderChannels] = None,
        recipient_ids: Optional[Iterable[str]] = None,
        project: Optional[Project] = None,
    ) -> Reminder:
        """
        Validate input and build a new scheduled reminder

        Raises:
            ValidationError: Bad title, channels, stage target, condition or delay
            InvalidTimeError: remind_at missing or unparseable
        """
        channels = channels or ReminderChannels()
        self._validate_channels(channels)
        timezone = self._validate_timezone(timezone)

        fields: Dict[str, Any] = {
            "reminder_id": reminder_id,
            "project_id": project.project_id if project else None,
            "title": self._validate_title(title),
            "message": self._validate_message(message),
            "template_key": (template_key or "").strip() or "custom",
            "timezone": timezone,
            "trigger_mode": trigger_mode,
            "repeat": repeat,
            "channels": channels,
            "created_by": actor.user_id,
            "recipients": self.permission_guard.resolve_recipients(actor, recipient_ids or []),
            "status": ReminderStatus.SCHEDULED,
            "is_active": True,
            "created_at": now,
            "updated_at": now,
        }

        if trigger_mode == ReminderTriggerMode.ABSOLUTE_TIME:
            fields.update(self._absolute_trigger(remind_at, timezone))
            fields["condition_status"] = self._condition_status(project, condition_status)
        else:
            fields.update(self._stage_trigger(project, watch_status, delay_minutes, now))

        return Reminder(**fields)

    # =========================================================================
    # Edit
    # =========================================================================

    def is_editable(self, reminder: Reminder, now: datetime) -> bool:
        """Scheduled, active, and either not yet due or still waiting for its stage"""
        if reminder.status != ReminderStatus.SCHEDULED or not reminder.is_active:
            return False
        if reminder.next_trigger_at is not None:
            return reminder.next_trigger_at > now
        return reminder.trigger_mode == ReminderTriggerMode.STAGE_BASED

    def apply_edit(
        self,
        reminder: Reminder,
        updates: Dict[str, Any],
        actor: ActorContext,
        now: datetime,
        project: Optional[Project] = None
    ) -> Reminder:
        """
        Apply a partial update to an editable reminder

        Trigger fields (mode, time, watched status, delay) rebuild the trigger
        only when they change its value; everything else is copied over.
        """
        if not self.is_editable(reminder, now):
            raise NotEditableError(
                "Only scheduled reminders that have not triggered yet can be edited",
                details={"reminder_id": reminder.reminder_id, "status": reminder.status.value}
            )

        changes: Dict[str, Any] = {"updated_at": now, "last_error": ""}

        if updates.get("title") is not None:
            changes["title"] = self._validate_title(updates["title"])
        if updates.get("message") is not None:
            changes["message"] = self._validate_message(updates["message"])
        if updates.get("repeat") is not None:
            changes["repeat"] = ReminderRepeat(updates["repeat"])
        if updates.get("template_key") is not None:
            changes["template_key"] = updates["template_key"].strip() or "custom"
        if updates.get("channels") is not None:
            channels = updates["channels"]
            if not isinstance(channels, ReminderChannels):
                channels = ReminderChannels(**{**reminder.channels.model_dump(), **channels})
            self._validate_channels(channels)
            changes["channels"] = channels
        if updates.get("recipient_ids") is not None:
            if not actor.is_admin:
                raise PermissionDeniedError("Only administrators can change reminder recipients")
            recipients = [reminder.created_by]
            for user_id in updates["recipient_ids"]:
                value = (user_id or "").strip()
                if value and value not in recipients:
                    recipients.append(value)
            changes["recipients"] = recipients

        changes.update(self._recompute_trigger(reminder, updates, project, now))
        return reminder.model_copy(update=changes)

    def _recompute_trigger(
        self,
        reminder: Reminder,
        updates: Dict[str, Any],
        project: Optional[Project],
        now: datetime
    ) -> Dict[str, Any]:
        """
        Trigger-related fields after an edit

        A timezone alone only changes how later remind_at input is read, so a
        snoozed or deferred next_trigger_at survives it.
        """
        timezone = self._validate_timezone(updates.get("timezone") or reminder.timezone)
        mode = ReminderTriggerMode(updates.get("trigger_mode") or reminder.trigger_mode)
        changes: Dict[str, Any] = {"timezone": timezone}

        if mode == ReminderTriggerMode.ABSOLUTE_TIME:
            condition = reminder.condition_status
            if "condition_status" in updates:
                condition = self._condition_status(project, updates["condition_status"])
            changes["condition_status"] = condition
        else:
            changes["condition_status"] = None

        if not any(updates.get(field) is not None for field in TRIGGER_FIELDS):
            return changes

        same_mode = mode == reminder.trigger_mode
        changes["trigger_mode"] = mode

        if mode == ReminderTriggerMode.ABSOLUTE_TIME:
            remind_at = updates.get("remind_at")
            if remind_at is None:
                if not same_mode:
                    raise InvalidTimeError("Absolute-time reminders require a reminder date")
                remind_at = reminder.remind_at
            trigger = self._absolute_trigger(remind_at, timezone)
            if same_mode and trigger["remind_at"] == reminder.remind_at:
                return changes
            changes.update(trigger)
            return changes

        if reminder.project_id is None or project is None:
            raise ValidationError("Stage-based reminders must be linked to a project")

        watch_status = updates.get("watch_status")
        if watch_status is None and reminder.watch_status is not None:
            watch_status = reminder.watch_status.value
        delay = updates.get("delay_minutes")
        if delay is None:
            delay = reminder.delay_minutes
        trigger = self._stage_trigger(project, watch_status, delay, now)
        if (
            same_mode
            and trigger["watch_status"] == reminder.watch_status
            and trigger["delay_minutes"] == reminder.delay_minutes
        ):
            return changes
        changes.update(trigger)
        return changes

    # =========================================================================
    # Act: snooze / complete / cancel / delete
    # =========================================================================

    def snooze(self, reminder: Reminder, minutes: Optional[int], now: datetime) -> Reminder:
        """Push the concrete trigger forward; status is unchanged"""
        if reminder.status != ReminderStatus.SCHEDULED:
            raise InvalidStateError(
                "Only scheduled reminders can be snoozed",
                details={"status": reminder.status.value}
            )
        if reminder.next_trigger_at is None:
            raise NoConcreteTriggerError(
                "This reminder is waiting for its target stage and cannot be snoozed yet",
                details={"reminder_id": reminder.reminder_id}
            )

        if minutes is None:
            minutes = self.limits.default_snooze_minutes
        if minutes <= 0:
            raise ValidationError("Snooze minutes must be positive", details={"minutes": minutes})
        minutes = min(minutes, self.limits.max_snooze_minutes)

        base = max(reminder.next_trigger_at, now)
        return reminder.model_copy(update={
            "next_trigger_at": add_minutes(base, minutes),
            "last_error": "",
            "updated_at": now,
        })

    def complete(self, reminder: Reminder, now: datetime) -> Optional[Reminder]:
        """Mark completed; None when already completed"""
        if reminder.status == ReminderStatus.COMPLETED:
            return None
        return reminder.model_copy(update={
            "status": ReminderStatus.COMPLETED,
            "is_active": False,
            "completed_at": now,
            "last_error": "",
            "updated_at": now,
        })

    def cancel(self, reminder: Reminder, now: datetime) -> Optional[Reminder]:
        """Mark cancelled; None when already cancelled"""
        if reminder.status == ReminderStatus.CANCELLED:
            return None
        return reminder.model_copy(update={
            "status": ReminderStatus.CANCELLED,
            "is_active": False,
            "cancelled_at": now,
            "last_error": "",
            "updated_at": now,
        })

    def check_deletable(self, reminder: Reminder) -> None:
        if reminder.status == ReminderStatus.SCHEDULED:
            raise CannotDeleteScheduledError(
                "Cancel the reminder before deleting it",
                details={"reminder_id": reminder.reminder_id}
            )

    # =========================================================================
    # Sweep
    # =========================================================================

    def activate_stage(
        self,
        reminder: Reminder,
        project: Optional[Project],
        now: datetime
    ) -> SweepOutcome:
        """Phase 1: match an unmatched stage reminder against its project"""
        if project is None:
            return SweepOutcome(self._resolve(reminder, now, "Project not found"), False, "project_missing")

        current = self._effective_status(project)
        if reminder.awaiting_stage_exit:
            if current == reminder.watch_status:
                return SweepOutcome(None, False, "awaiting_exit")
            rearmed = reminder.model_copy(update={"awaiting_stage_exit": False, "updated_at": now})
            return SweepOutcome(rearmed, False, "rearmed")

        if project.is_on_hold or current != reminder.watch_status:
            return SweepOutcome(None, False, "waiting")

        matched = reminder.model_copy(update={
            "stage_matched_at": now,
            "next_trigger_at": add_minutes(now, reminder.delay_minutes),
            "updated_at": now,
        })
        return SweepOutcome(matched, False, "matched")

    def process_due(
        self,
        reminder: Reminder,
        project: Optional[Project],
        now: datetime
    ) -> SweepOutcome:
        """Phase 2: fire a reminder whose trigger time has passed"""
        if reminder.trigger_mode == ReminderTriggerMode.STAGE_BASED:
            return self._process_stage_due(reminder, project, now)

        if (
            reminder.condition_status is not None
            and project is not None
            and project.status != reminder.condition_status
        ):
            return SweepOutcome(self.defer(reminder, now), False, "condition_not_met")

        fired = self._mark_fired(reminder, now)
        if reminder.repeat == ReminderRepeat.NONE:
            return SweepOutcome(self._resolve(fired, now), True, "fired")

        anchor = reminder.remind_at or reminder.next_trigger_at
        while anchor <= now:
            anchor = add_period(anchor, reminder.repeat.value)
        rearmed = fired.model_copy(update={"remind_at": anchor, "next_trigger_at": anchor})
        return SweepOutcome(rearmed, True, "fired")

    def defer(self, reminder: Reminder, now: datetime, error: str = "") -> Reminder:
        """Move a due reminder one recheck interval past `now`"""
        return reminder.model_copy(update={
            "next_trigger_at": add_minutes(now, self.limits.recheck_minutes),
            "last_error": error,
            "updated_at": now,
        })

    def _process_stage_due(
        self,
        reminder: Reminder,
        project: Optional[Project],
        now: datetime
    ) -> SweepOutcome:
        if project is None:
            return SweepOutcome(self._resolve(reminder, now, "Project not found"), False, "project_missing")
        if project.is_on_hold:
            return SweepOutcome(self.defer(reminder, now), False, "on_hold")

        repeating = reminder.repeat != ReminderRepeat.NONE
        if project.status != reminder.watch_status:
            if repeating:
                return SweepOutcome(self._clear_match(reminder, now, awaiting_exit=False), False, "stage_left")
            return SweepOutcome(self._resolve(reminder, now), False, "stage_left")

        fired = self._mark_fired(reminder, now)
        if repeating:
            return SweepOutcome(self._clear_match(fired, now, awaiting_exit=True), True, "fired")
        return SweepOutcome(self._resolve(fired, now), True, "fired")

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _effective_status(project: Project) -> ProjectStatus:
        if project.hold is not None:
            return project.hold.previous_status
        return project.status

    @staticmethod
    def _mark_fired(reminder: Reminder, now: datetime) -> Reminder:
        return reminder.model_copy(update={
            "last_triggered_at": now,
            "trigger_count": reminder.trigger_count + 1,
            "last_error": "",
            "updated_at": now,
        })

    @staticmethod
    def _resolve(reminder: Reminder, now: datetime, note: str = "") -> Reminder:
        return reminder.model_copy(update={
            "status": ReminderStatus.COMPLETED,
            "is_active": False,
            "completed_at": now,
            "last_error": note,
            "updated_at": now,
        })

    @staticmethod
    def _clear_match(reminder: Reminder, now: datetime, awaiting_exit: bool) -> Reminder:
        return reminder.model_copy(update={
            "stage_matched_at": None,
            "next_trigger_at": None,
            "awaiting_stage_exit": awaiting_exit,
            "updated_at": now,
        })

    def _absolute_trigger(self, remind_at: Union[str, datetime, None], timezone: str) -> Dict[str, Any]:
        if isinstance(remind_at, datetime):
            parsed = to_naive_utc(remind_at)
        else:
            parsed = parse_iso(remind_at, default_tz=timezone) if remind_at else None
        if parsed is None:
            raise InvalidTimeError(
                "A valid reminder date is required",
                details={"remind_at": remind_at if isinstance(remind_at, str) else None}
            )
        # Past values are accepted and fire on the next sweep
        return {
            "remind_at": parsed,
            "next_trigger_at": parsed,
            "watch_status": None,
            "delay_minutes": 0,
            "stage_matched_at": None,
            "awaiting_stage_exit": False,
        }

    def _stage_trigger(
        self,
        project: Optional[Project],
        watch_status: Optional[str],
        delay_minutes: Optional[int],
        now: datetime
    ) -> Dict[str, Any]:
        if project is None:
            raise ValidationError("Stage-based reminders must be linked to a project")

        value = (watch_status or "").strip() if isinstance(watch_status, str) else watch_status
        if not value:
            raise ValidationError("Stage-based reminders require a target project status")
        status = self._project_status(project, value)

        delay = 0 if delay_minutes is None else delay_minutes
        if delay < 0 or delay > self.limits.max_delay_minutes:
            raise ValidationError(
                "Delay must be between 0 and the configured maximum",
                details={"delay_minutes": delay, "max": self.limits.max_delay_minutes}
            )

        fields: Dict[str, Any] = {
            "remind_at": None,
            "watch_status": status,
            "delay_minutes": delay,
            "stage_matched_at": None,
            "next_trigger_at": None,
            "awaiting_stage_exit": False,
        }
        if project.status == status:
            fields["stage_matched_at"] = now
            fields["next_trigger_at"] = add_minutes(now, delay)
        return fields

    def _condition_status(
        self,
        project: Optional[Project],
        condition_status: Union[str, ProjectStatus, None]
    ) -> Optional[ProjectStatus]:
        """Validated gate for an absolute reminder; blank clears it"""
        value = condition_status.strip() if isinstance(condition_status, str) else condition_status
        if not value:
            return None
        if project is None:
            raise ValidationError("Conditional reminders must be linked to a project")
        return self._project_status(project, value)

    @staticmethod
    def _project_status(project: Project, value: Union[str, ProjectStatus]) -> ProjectStatus:
        try:
            status = ProjectStatus(value)
        except ValueError:
            raise ValidationError(f"Unknown project status '{value}'") from None
        if status not in status_flow.sequence_for(project.project_type):
            raise ValidationError(
                f"'{status.value}' is not a status of {project.project_type.value} projects"
            )
        return status

    @staticmethod
    def _validate_title(title: Optional[str]) -> str:
        value = (title or "").strip()
        if not value:
            raise ValidationError("Reminder title is required")
        if len(value) > TITLE_MAX_LENGTH:
            raise ValidationError(
                f"Reminder title must be at most {TITLE_MAX_LENGTH} characters"
            )
        return value

    @staticmethod
    def _validate_message(message: Optional[str]) -> str:
        value = (message or "").strip()
        if len(value) > MESSAGE_MAX_LENGTH:
            raise ValidationError(
                f"Reminder message must be at most {MESSAGE_MAX_LENGTH} characters"
            )
        return value

    @staticmethod
    def _validate_channels(channels: ReminderChannels) -> None:
        if not (channels.in_app or channels.email):
            raise ValidationError("At least one reminder delivery channel is required")

    @staticmethod
    def _validate_timezone(timezone: Optional[str]) -> str:
        value = (timezone or "").strip() or "UTC"
        if not is_known_timezone(value):
            raise ValidationError(f"Unknown timezone '{value}'")
        return value
