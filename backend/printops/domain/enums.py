"""Domain Enumerations - All status and type definitions"""
from enum import Enum


class ProjectStatus(str, Enum):
    """Project lifecycle status (union of every project type's sequence)"""
    ORDER_CONFIRMED = "Order Confirmed"
    PENDING_SCOPE_APPROVAL = "Pending Scope Approval"
    SCOPE_APPROVAL_COMPLETED = "Scope Approval Completed"
    PENDING_DEPARTMENTAL_ENGAGEMENT = "Pending Departmental Engagement"
    DEPARTMENTAL_ENGAGEMENT_COMPLETED = "Departmental Engagement Completed"
    PENDING_MOCKUP = "Pending Mockup"
    MOCKUP_COMPLETED = "Mockup Completed"
    PENDING_PROOF_READING = "Pending Proof Reading"
    PROOF_READING_COMPLETED = "Proof Reading Completed"
    PENDING_PRODUCTION = "Pending Production"
    PRODUCTION_COMPLETED = "Production Completed"
    PENDING_QUALITY_CONTROL = "Pending Quality Control"
    QUALITY_CONTROL_COMPLETED = "Quality Control Completed"
    PENDING_PHOTOGRAPHY = "Pending Photography"
    PHOTOGRAPHY_COMPLETED = "Photography Completed"
    PENDING_PACKAGING = "Pending Packaging"
    PACKAGING_COMPLETED = "Packaging Completed"
    PENDING_DELIVERY_PICKUP = "Pending Delivery/Pickup"
    DELIVERED = "Delivered"
    # Quote-specific
    PENDING_QUOTE_REQUEST = "Pending Quote Request"
    QUOTE_REQUEST_COMPLETED = "Quote Request Completed"
    PENDING_SEND_RESPONSE = "Pending Send Response"
    RESPONSE_SENT = "Response Sent"
    # Shared tail
    PENDING_FEEDBACK = "Pending Feedback"
    FEEDBACK_COMPLETED = "Feedback Completed"
    COMPLETED = "Completed"
    FINISHED = "Finished"
    # Outside every sequence; entered/left only via hold/release
    ON_HOLD = "On Hold"


class ProjectType(str, Enum):
    """Project/order type"""
    STANDARD = "Standard"
    EMERGENCY = "Emergency"
    QUOTE = "Quote"
    CORPORATE_JOB = "Corporate Job"


class Priority(str, Enum):
    """Project priority"""
    NORMAL = "Normal"
    URGENT = "Urgent"


class DepartmentGroup(str, Enum):
    """Departments that own a completable production stage"""
    GRAPHICS = "Graphics"
    PRODUCTION = "Production"
    STORES = "Stores"


class FeedbackType(str, Enum):
    """Client feedback sentiment"""
    POSITIVE = "Positive"
    NEGATIVE = "Negative"


class ActivityAction(str, Enum):
    """Activity log action types"""
    CREATE = "create"
    STATUS_CHANGE = "status_change"
    ENGAGEMENT_ACKNOWLEDGE = "engagement_acknowledge"
    ENGAGEMENT_UNACKNOWLEDGE = "engagement_unacknowledge"
    MOCKUP_UPLOAD = "mockup_upload"
    PAYMENT_VERIFICATION = "payment_verification"
    PAYMENT_VERIFICATION_UNDO = "payment_verification_undo"
    FEEDBACK_ADD = "feedback_add"
    HOLD = "hold"
    RELEASE = "release"
    REOPEN = "reopen"


class ReminderTriggerMode(str, Enum):
    """How a reminder decides it is due"""
    ABSOLUTE_TIME = "absolute_time"
    STAGE_BASED = "stage_based"


class ReminderRepeat(str, Enum):
    """Reminder repeat cadence"""
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class ReminderStatus(str, Enum):
    """Reminder lifecycle status"""
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class NotificationStatus(str, Enum):
    """Email outbox status"""
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


class InAppNotificationCategory(str, Enum):
    """Categories for in-app notifications"""
    REMINDER = "REMINDER"
    STATUS_CHANGE = "STATUS_CHANGE"
    SYSTEM = "SYSTEM"
