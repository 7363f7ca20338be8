"""Domain Models - Pydantic schemas for all entities"""
from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Optional
from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field, PlainSerializer

from .enums import (
    ProjectStatus, ProjectType, Priority, FeedbackType, ActivityAction,
    ReminderTriggerMode, ReminderRepeat, ReminderStatus, NotificationStatus,
    InAppNotificationCategory
)


def _naive_utc(value: datetime) -> datetime:
    """Store every timestamp as naive UTC (what pymongo returns)"""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _utc_iso(value: datetime) -> str:
    return value.replace(tzinfo=timezone.utc).isoformat().replace("+00:00", "Z")


# Naive UTC in storage, "...Z" on the wire
UtcDatetime = Annotated[
    datetime,
    AfterValidator(_naive_utc),
    PlainSerializer(_utc_iso, return_type=str, when_used="json"),
]


# ============================================================================
# User & Identity
# ============================================================================

class ActorContext(BaseModel):
    """Current actor context from the bearer token"""
    model_config = ConfigDict(extra="forbid")

    user_id: str = Field(..., description="Stable user ID")
    email: EmailStr = Field(..., description="User email")
    display_name: str = Field(..., description="User display name")
    roles: List[str] = Field(default_factory=list, description="Assigned roles")
    departments: List[str] = Field(default_factory=list, description="Sub-department ids")

    @property
    def is_admin(self) -> bool:
        return "admin" in self.roles

    def belongs_to(self, department: str) -> bool:
        return department.strip().lower() in self.departments


class UserSnapshot(BaseModel):
    """Snapshot of user identity at a point in time"""
    user_id: str
    email: Optional[str] = None
    display_name: Optional[str] = None

    @classmethod
    def from_actor(cls, actor: ActorContext) -> "UserSnapshot":
        return cls(user_id=actor.user_id, email=actor.email, display_name=actor.display_name)


# ============================================================================
# Project
# ============================================================================

class Acknowledgement(BaseModel):
    """A department's confirmation of engagement"""
    department: str
    acknowledged_by: UserSnapshot
    acknowledged_at: UtcDatetime


class PaymentVerification(BaseModel):
    """Recorded payment evidence; gates Production Completed"""
    type: str = Field(..., min_length=1, max_length=80)
    note: Optional[str] = Field(None, max_length=1000)
    recorded_by: UserSnapshot
    recorded_at: UtcDatetime


class Mockup(BaseModel):
    """Mockup file metadata (the file itself lives in file storage)"""
    file_url: str
    file_name: str
    uploaded_by: Optional[UserSnapshot] = None
    uploaded_at: UtcDatetime


class Feedback(BaseModel):
    """Client feedback on a delivered project"""
    feedback_id: str
    type: FeedbackType
    notes: str = ""
    attachments: List[str] = Field(default_factory=list, description="File storage references")
    created_by: UserSnapshot
    created_at: UtcDatetime


class ProjectItem(BaseModel):
    description: str
    breakdown: str = ""
    qty: int = Field(1, ge=0)


class ProductionRisk(BaseModel):
    description: str
    preventive: str = ""


class UncontrollableFactor(BaseModel):
    description: str
    responsible: Optional[str] = None
    status: Optional[str] = None


class ProjectHold(BaseModel):
    """Hold state; status is restored from previous_status on release"""
    reason: str = ""
    held_by: UserSnapshot
    held_at: UtcDatetime
    previous_status: ProjectStatus


class RevisionInfo(BaseModel):
    """How a revision came to exist"""
    reason: str
    reopened_from: str = Field(..., description="project_id of the previous revision")
    reopened_by: UserSnapshot
    reopened_at: UtcDatetime


class Project(BaseModel):
    """Project / order aggregate root"""
    model_config = ConfigDict(extra="ignore")

    project_id: str
    order_id: str
    project_name: str
    project_type: ProjectType = ProjectType.STANDARD
    priority: Priority = Priority.NORMAL
    status: ProjectStatus = ProjectStatus.ORDER_CONFIRMED

    lineage_id: str
    version_number: int = Field(1, ge=1)

    departments: List[str] = Field(default_factory=list)
    acknowledgements: List[Acknowledgement] = Field(default_factory=list)
    payment_verifications: List[PaymentVerification] = Field(default_factory=list)
    mockup: Optional[Mockup] = None
    feedbacks: List[Feedback] = Field(default_factory=list)

    items: List[ProjectItem] = Field(default_factory=list)
    production_risks: List[ProductionRisk] = Field(default_factory=list)
    uncontrollable_factors: List[UncontrollableFactor] = Field(default_factory=list)

    hold: Optional[ProjectHold] = None
    revision: Optional[RevisionInfo] = None

    created_by: UserSnapshot
    created_at: UtcDatetime
    updated_at: UtcDatetime
    version: int = Field(1, description="Optimistic concurrency counter")

    @property
    def is_on_hold(self) -> bool:
        return self.hold is not None or self.status == ProjectStatus.ON_HOLD

    def acknowledgement_for(self, department: str) -> Optional[Acknowledgement]:
        for ack in self.acknowledgements:
            if ack.department == department:
                return ack
        return None


class ActivityLogEntry(BaseModel):
    """Append-only project activity"""
    activity_id: str
    project_id: str
    action: ActivityAction
    description: str
    details: Dict[str, Any] = Field(default_factory=dict)
    actor: UserSnapshot
    created_at: UtcDatetime


# ============================================================================
# Reminder
# ============================================================================

class ReminderChannels(BaseModel):
    in_app: bool = True
    email: bool = False


class Reminder(BaseModel):
    """Reminder attached (optionally) to a project"""
    model_config = ConfigDict(extra="ignore")

    reminder_id: str
    project_id: Optional[str] = None
    title: str = Field(..., min_length=1, max_length=140)
    message: str = Field("", max_length=2000)
    template_key: str = "custom"
    timezone: str = "UTC"

    trigger_mode: ReminderTriggerMode = ReminderTriggerMode.ABSOLUTE_TIME
    remind_at: Optional[UtcDatetime] = None
    repeat: ReminderRepeat = ReminderRepeat.NONE
    # Absolute reminders only: fire while the project sits on this status,
    # otherwise recheck later
    condition_status: Optional[ProjectStatus] = None

    watch_status: Optional[ProjectStatus] = None
    delay_minutes: int = Field(0, ge=0)
    stage_matched_at: Optional[UtcDatetime] = None
    # Set after a repeating stage reminder fires while the project still sits on
    # watch_status; cleared once the project leaves it
    awaiting_stage_exit: bool = False

    # Effective fire time for both modes; null while a stage reminder waits
    next_trigger_at: Optional[UtcDatetime] = None

    channels: ReminderChannels = Field(default_factory=ReminderChannels)
    created_by: str
    recipients: List[str] = Field(default_factory=list, description="Recipient user ids")

    status: ReminderStatus = ReminderStatus.SCHEDULED
    is_active: bool = True
    last_triggered_at: Optional[UtcDatetime] = None
    trigger_count: int = 0
    completed_at: Optional[UtcDatetime] = None
    cancelled_at: Optional[UtcDatetime] = None
    last_error: str = ""

    created_at: UtcDatetime
    updated_at: UtcDatetime
    version: int = 1


# ============================================================================
# Notifications
# ============================================================================

class InAppNotification(BaseModel):
    """In-app notification for the notification bell"""
    notification_id: str
    recipient_id: str
    category: InAppNotificationCategory
    title: str
    message: str
    project_id: Optional[str] = None
    reminder_id: Optional[str] = None
    is_read: bool = False
    created_at: UtcDatetime
    read_at: Optional[UtcDatetime] = None


class EmailOutboxEntry(BaseModel):
    """Email waiting for the delivery transport"""
    notification_id: str
    recipient_ids: List[str]
    title: str
    message: str
    project_id: Optional[str] = None
    reminder_id: Optional[str] = None
    status: NotificationStatus = NotificationStatus.PENDING
    created_at: UtcDatetime
