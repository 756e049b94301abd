from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from html import escape
from typing import List
import logging

from mailer import Mailer
from schemas import (
    MessageResponse, Notification as NotificationSchema, NotificationCreate,
    SendNowRequest, SendNowResponse, User
)
from storage import Storage
from dependencies import get_mailer, get_storage, require_admin, validate_id
from websocket_manager import manager

logger = logging.getLogger(__name__)

router = APIRouter()

SORT_FIELDS = {"notifyAt": "notify_at", "message": "message", "sent": "sent"}

def notification_payload(notification: NotificationSchema) -> dict:
    return notification.model_dump(mode="json", by_alias=True)

@router.get("", response_model=List[NotificationSchema])
async def get_notifications(
    sort_by: str = Query("notifyAt", alias="sortBy"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    storage: Storage = Depends(get_storage)
):
    """List notifications, newest first unless asked otherwise"""
    if sort_by not in SORT_FIELDS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"sortBy must be one of: {', '.join(SORT_FIELDS)}"
        )
    return storage.get_notifications(sort_by=SORT_FIELDS[sort_by], order=order)

@router.post("", response_model=NotificationSchema, status_code=status.HTTP_201_CREATED)
async def create_notification(
    payload: NotificationCreate,
    background_tasks: BackgroundTasks,
    storage: Storage = Depends(get_storage),
    mailer: Mailer = Depends(get_mailer),
    current_user: User = Depends(require_admin)
):
    if payload.event_id and not storage.get_event(payload.event_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Event not found"
        )

    notification = storage.create_notification(
        message=payload.message,
        notify_at=payload.notify_at,
        event_id=payload.event_id
    )
    logger.info(f"Notification {notification.id} scheduled for {notification.notify_at.isoformat()}")

    # Delivery never decides the outcome of the request
    if mailer.enabled:
        scheduled = notification.notify_at.strftime("%Y-%m-%d %H:%M UTC")
        background_tasks.add_task(
            mailer.send_quietly,
            f"New Notification: {notification.message[:30]}...",
            f"A new notification has been created:\n\n{notification.message}\n\nScheduled for: {scheduled}",
            f"<p>A new notification has been created:</p><blockquote>{escape(notification.message)}</blockquote>"
            f"<p>Scheduled for: {scheduled}</p>"
        )

    await manager.publish("notification_created", notification=notification_payload(notification))
    return notification

@router.put("/{notification_id}/mark-sent", response_model=MessageResponse)
async def mark_notification_sent(notification_id: str, storage: Storage = Depends(get_storage)):
    """Mark a notification as no longer pending. Repeating the call is harmless."""
    validate_id(notification_id, "notification")
    if not storage.get_notification(notification_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found"
        )

    if storage.mark_notification_as_sent(notification_id):
        await manager.publish("notification_sent", notificationId=notification_id)
    return {"message": "Notification marked as sent"}

@router.post("/send-now", response_model=SendNowResponse)
async def send_now(
    payload: SendNowRequest,
    background_tasks: BackgroundTasks,
    mailer: Mailer = Depends(get_mailer),
    current_user: User = Depends(require_admin)
):
    """Broadcast an announcement immediately to live clients and, optionally, by email"""
    message = (payload.message or "").strip()
    if not message:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Notification message is required"
        )

    email_attempted = payload.send_email and mailer.enabled
    if email_attempted:
        background_tasks.add_task(
            mailer.send_quietly,
            "Announcement",
            message,
            f"<p><b>Announcement:</b></p><p>{escape(message)}</p>"
        )

    await manager.publish("announcement", message=message, sentBy=current_user.username)
    return {"message": "Announcement processed.", "email_attempted": email_attempted}
