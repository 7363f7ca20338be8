"""Domain Errors - Centralized Exception Hierarchy"""
from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base domain error - all errors extend this"""

    error_code: str = "DOMAIN_ERROR"
    kind: str = "DomainError"
    http_status: int = 400

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to API response dict"""
        return {
            "error": {
                "code": self.error_code,
                "kind": self.kind,
                "message": self.message,
                "details": self.details
            }
        }


# Authentication & Authorization Errors
class AuthenticationError(DomainError):
    """Token missing, invalid, or expired"""
    error_code = "AUTHENTICATION_ERROR"
    kind = "AuthenticationError"
    http_status = 401


class AuthorizationError(DomainError):
    """User lacks permission for action"""
    error_code = "AUTHORIZATION_ERROR"
    kind = "AuthorizationError"
    http_status = 403


class PermissionDeniedError(AuthorizationError):
    """Specific permission denied"""
    error_code = "PERMISSION_DENIED"
    kind = "PermissionDenied"


# Validation Errors
class ValidationError(DomainError):
    """Input validation failed"""
    error_code = "VALIDATION_ERROR"
    kind = "ValidationError"
    http_status = 400


class AttachmentRequiredError(ValidationError):
    """Feedback submitted without media while in a gating status"""
    error_code = "ATTACHMENT_REQUIRED"
    kind = "AttachmentRequired"


class InvalidTimeError(ValidationError):
    """Reminder time could not be parsed"""
    error_code = "INVALID_TIME"
    kind = "InvalidTime"


# Not Found Errors
class NotFoundError(DomainError):
    """Resource not found"""
    error_code = "NOT_FOUND"
    kind = "NotFound"
    http_status = 404


class ProjectNotFoundError(NotFoundError):
    """Project not found"""
    error_code = "PROJECT_NOT_FOUND"
    kind = "ProjectNotFound"


class ReminderNotFoundError(NotFoundError):
    """Reminder not found"""
    error_code = "REMINDER_NOT_FOUND"
    kind = "ReminderNotFound"


# Conflict Errors
class ConflictError(DomainError):
    """Resource conflict (e.g., concurrent modification)"""
    error_code = "CONFLICT"
    kind = "Conflict"
    http_status = 409


class ConcurrencyError(ConflictError):
    """Optimistic concurrency conflict - caller must refetch and retry"""
    error_code = "STALE_STATE"
    kind = "StaleState"


class InvalidStateError(ConflictError):
    """Action not valid for current state"""
    error_code = "INVALID_STATE"
    kind = "InvalidState"


class InvalidTransitionError(InvalidStateError):
    """Requested status not reachable from the current status"""
    error_code = "INVALID_TRANSITION"
    kind = "InvalidTransition"


class PaymentVerificationRequiredError(InvalidStateError):
    """Production Completed attempted with no payment record"""
    error_code = "PAYMENT_VERIFICATION_REQUIRED"
    kind = "PaymentVerificationRequired"


class MockupRequiredError(InvalidStateError):
    """Mockup completion attempted with no mockup uploaded"""
    error_code = "MOCKUP_REQUIRED"
    kind = "MockupRequired"


class ScopeApprovalIncompleteError(InvalidStateError):
    """Acknowledgement attempted before scope approval"""
    error_code = "SCOPE_APPROVAL_INCOMPLETE"
    kind = "ScopeApprovalIncomplete"


class EngagementNotAcknowledgedError(InvalidStateError):
    """Department completion attempted before the department acknowledged"""
    error_code = "ENGAGEMENT_NOT_ACKNOWLEDGED"
    kind = "EngagementNotAcknowledged"


class FeedbackNotOpenError(InvalidStateError):
    """Feedback attempted before delivery"""
    error_code = "FEEDBACK_NOT_OPEN"
    kind = "FeedbackNotOpen"


class NotLatestRevisionError(InvalidStateError):
    """Reopen attempted on a superseded revision"""
    error_code = "NOT_LATEST_REVISION"
    kind = "NotLatestRevision"


class NoConcreteTriggerError(InvalidStateError):
    """Snooze attempted on a stage-based reminder still waiting for its stage"""
    error_code = "NO_CONCRETE_TRIGGER"
    kind = "NoConcreteTrigger"


class NotEditableError(InvalidStateError):
    """Edit attempted on a reminder past its trigger or already resolved"""
    error_code = "NOT_EDITABLE"
    kind = "NotEditable"


class CannotDeleteScheduledError(InvalidStateError):
    """Delete attempted on a reminder that is still scheduled"""
    error_code = "CANNOT_DELETE_SCHEDULED"
    kind = "CannotDeleteScheduled"


class ProjectOnHoldError(DomainError):
    """Project is on hold and must be released before changes"""
    error_code = "PROJECT_ON_HOLD"
    kind = "ProjectOnHold"
    http_status = 423
