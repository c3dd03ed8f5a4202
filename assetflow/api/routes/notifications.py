"""Notification routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from assetflow.api.dependencies import get_notification_service
from assetflow.api.errors import unwrap_or_raise
from assetflow.api.schemas import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from assetflow.services.notifications import NotificationService

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    user_id: str,
    unread_only: bool = False,
    limit: Optional[int] = Query(None, ge=1, le=1000),
    service: NotificationService = Depends(get_notification_service),
):
    """List a user's notifications, newest first."""
    notifications = unwrap_or_raise(
        await service.get_user_notifications(user_id, limit=limit, unread_only=unread_only)
    )
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        total=len(notifications),
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    user_id: str,
    service: NotificationService = Depends(get_notification_service),
):
    return UnreadCountResponse(user_id=user_id, unread=unwrap_or_raise(await service.get_unread_count(user_id)))


@router.post("/read-all", response_model=MarkAllReadResponse)
async def mark_all_read(
    user_id: str,
    service: NotificationService = Depends(get_notification_service),
):
    updated = unwrap_or_raise(await service.mark_all_as_read(user_id))
    return MarkAllReadResponse(user_id=user_id, updated=len(updated))


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: str,
    service: NotificationService = Depends(get_notification_service),
):
    """Mark one notification as read."""
    notification = unwrap_or_raise(
        await service.mark_as_read(notification_id),
        not_found="Notification not found",
    )
    return NotificationResponse.model_validate(notification)
