"""Reminders API - Create, list, act on and manage reminders"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field

from ..deps import get_current_user_dep, get_reminder_service
from ...domain.models import ActorContext, Reminder, ReminderChannels
from ...domain.enums import ProjectStatus, ReminderRepeat, ReminderStatus, ReminderTriggerMode
from ...services.reminder_service import ReminderService
from ...utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


# =============================================================================
# Request / Response Models
# =============================================================================

class CreateReminderRequest(BaseModel):
    """
    New reminder

    remind_at is an ISO 8601 string; values without an offset are read in
    `timezone`. Stage-based reminders name a project and a watch_status instead.
    """
    title: str = Field(..., max_length=140)
    message: str = Field("", max_length=2000)
    project_id: Optional[str] = None
    trigger_mode: ReminderTriggerMode = ReminderTriggerMode.ABSOLUTE_TIME
    remind_at: Optional[str] = None
    repeat: ReminderRepeat = ReminderRepeat.NONE
    watch_status: Optional[ProjectStatus] = None
    delay_minutes: Optional[int] = Field(None, ge=0)
    condition_status: Optional[ProjectStatus] = Field(
        None, description="Absolute reminders only: fire only while the project is on this status"
    )
    timezone: str = "UTC"
    template_key: str = "custom"
    channels: ReminderChannels = Field(default_factory=ReminderChannels)
    recipient_ids: List[str] = Field(default_factory=list, description="Honoured for administrators only")


class ChannelsUpdate(BaseModel):
    in_app: Optional[bool] = None
    email: Optional[bool] = None


class UpdateReminderRequest(BaseModel):
    """Partial update; omitted fields keep their value"""
    title: Optional[str] = Field(None, max_length=140)
    message: Optional[str] = Field(None, max_length=2000)
    trigger_mode: Optional[ReminderTriggerMode] = None
    remind_at: Optional[str] = None
    repeat: Optional[ReminderRepeat] = None
    watch_status: Optional[ProjectStatus] = None
    delay_minutes: Optional[int] = Field(None, ge=0)
    condition_status: Optional[str] = Field(None, description="Empty string clears the condition")
    timezone: Optional[str] = None
    template_key: Optional[str] = None
    channels: Optional[ChannelsUpdate] = None
    recipient_ids: Optional[List[str]] = None


class SnoozeRequest(BaseModel):
    minutes: Optional[int] = Field(None, description="Defaults to 60")


class ReminderListResponse(BaseModel):
    items: List[Reminder]
    total: int


# =============================================================================
# Endpoints
# =============================================================================

@router.get("", response_model=ReminderListResponse)
async def list_reminders(
    project_id: Optional[str] = Query(None),
    include_completed: bool = Query(False, description="Include completed and cancelled reminders"),
    status: Optional[ReminderStatus] = Query(None),
    actor: ActorContext = Depends(get_current_user_dep),
    service: ReminderService = Depends(get_reminder_service)
):
    """
    Reminders the caller created or receives

    Sorted by next trigger time, then newest first. Only scheduled reminders
    are returned unless include_completed or status says otherwise.
    """
    reminders = service.list_reminders(
        actor,
        project_id=project_id,
        include_completed=include_completed,
        status=status
    )
    return ReminderListResponse(items=reminders, total=len(reminders))


@router.post("", response_model=Reminder, status_code=status.HTTP_201_CREATED)
async def create_reminder(
    request: CreateReminderRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    service: ReminderService = Depends(get_reminder_service)
):
    reminder = service.create_reminder(
        actor,
        title=request.title,
        message=request.message,
        project_id=request.project_id,
        trigger_mode=request.trigger_mode,
        remind_at=request.remind_at,
        repeat=request.repeat,
        watch_status=request.watch_status.value if request.watch_status else None,
        delay_minutes=request.delay_minutes,
        condition_status=request.condition_status.value if request.condition_status else None,
        timezone=request.timezone,
        template_key=request.template_key,
        channels=request.channels,
        recipient_ids=request.recipient_ids
    )
    logger.info(
        f"Created reminder: {reminder.reminder_id}",
        extra={"reminder_id": reminder.reminder_id, "project_id": reminder.project_id, "actor_email": actor.email}
    )
    return reminder


@router.get("/{reminder_id}", response_model=Reminder)
async def get_reminder(
    reminder_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    service: ReminderService = Depends(get_reminder_service)
):
    return service.get_reminder(reminder_id, actor)


@router.patch("/{reminder_id}", response_model=Reminder)
async def edit_reminder(
    reminder_id: str,
    request: UpdateReminderRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    service: ReminderService = Depends(get_reminder_service)
):
    """Edit a reminder that has not triggered yet (creator or administrator)"""
    updates = request.model_dump(exclude_none=True)
    if request.watch_status is not None:
        updates["watch_status"] = request.watch_status.value
    return service.edit_reminder(reminder_id, updates, actor)


@router.patch("/{reminder_id}/snooze", response_model=Reminder)
async def snooze_reminder(
    reminder_id: str,
    request: Optional[SnoozeRequest] = None,
    actor: ActorContext = Depends(get_current_user_dep),
    service: ReminderService = Depends(get_reminder_service)
):
    minutes = request.minutes if request else None
    return service.snooze(reminder_id, minutes, actor)


@router.patch("/{reminder_id}/complete", response_model=Reminder)
async def complete_reminder(
    reminder_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    service: ReminderService = Depends(get_reminder_service)
):
    return service.complete(reminder_id, actor)


@router.patch("/{reminder_id}/cancel", response_model=Reminder)
async def cancel_reminder(
    reminder_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    service: ReminderService = Depends(get_reminder_service)
):
    return service.cancel(reminder_id, actor)


@router.delete("/{reminder_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_reminder(
    reminder_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    service: ReminderService = Depends(get_reminder_service)
):
    """Delete a completed or cancelled reminder (creator or administrator)"""
    service.delete_reminder(reminder_id, actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
