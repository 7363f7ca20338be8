"""User Notifications API - In-app notification bell endpoints"""
from typing import List
from fastapi import APIRouter, Depends, Query

from pydantic import BaseModel

from ..deps import get_current_user_dep, get_notification_service
from ...domain.models import ActorContext, InAppNotification
from ...services.notification_service import NotificationService

router = APIRouter()


class NotificationListResponse(BaseModel):
    """Notifications with the caller's unread badge count"""
    items: List[InAppNotification]
    unread_count: int


class UnreadCountResponse(BaseModel):
    unread_count: int


@router.get("", response_model=NotificationListResponse)
async def get_notifications(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    unread_only: bool = Query(False),
    actor: ActorContext = Depends(get_current_user_dep),
    service: NotificationService = Depends(get_notification_service)
):
    """
    Notifications addressed to the current user, newest first
    """
    return NotificationListResponse(
        items=service.list_notifications(actor, unread_only=unread_only, skip=skip, limit=limit),
        unread_count=service.unread_count(actor)
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    actor: ActorContext = Depends(get_current_user_dep),
    service: NotificationService = Depends(get_notification_service)
):
    """Lightweight endpoint for polling the notification badge"""
    return UnreadCountResponse(unread_count=service.unread_count(actor))


@router.patch("/{notification_id}/read", response_model=InAppNotification)
async def mark_notification_read(
    notification_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    service: NotificationService = Depends(get_notification_service)
):
    """Mark one of the caller's notifications as read"""
    return service.mark_read(notification_id, actor)
