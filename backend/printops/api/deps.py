"""API Dependencies - Actor resolution and service providers for routes"""
from typing import Optional
from fastapi import Header, HTTPException, status

from ..domain.models import ActorContext
from ..domain.errors import AuthenticationError
from ..services.notification_service import NotificationService
from ..services.project_service import ProjectService
from ..services.reminder_service import ReminderService
from ..utils.jwt import get_current_user
from ..utils.logger import get_correlation_id, set_correlation_id
from ..utils.idgen import generate_correlation_id


async def get_correlation_id_dep(
    x_correlation_id: Optional[str] = Header(None, alias="X-Correlation-Id")
) -> str:
    """
    Correlation ID of the current request

    The middleware has normally set one already; a header value wins,
    otherwise a fresh ID is generated.
    """
    correlation_id = get_correlation_id() or x_correlation_id or generate_correlation_id()
    set_correlation_id(correlation_id)
    return correlation_id


async def get_current_user_dep(
    authorization: Optional[str] = Header(None)
) -> ActorContext:
    """
    Resolve the acting user from the bearer token

    The actor is passed explicitly into every service call.

    Raises:
        HTTPException: 401 if the token is missing or invalid
    """
    try:
        return get_current_user(authorization or "")
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.to_dict(),
            headers={"WWW-Authenticate": "Bearer"}
        )


def get_project_service() -> ProjectService:
    return ProjectService()


def get_reminder_service() -> ReminderService:
    return ReminderService()


def get_notification_service() -> NotificationService:
    return NotificationService()
