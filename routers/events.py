from fastapi import APIRouter, Depends, HTTPException, status
from datetime import timedelta
from typing import List
import logging

from config import settings
from dates import combine_date_time
from schemas import Event as EventSchema, EventCreate, EventUpdate, MessageResponse, User
from storage import Storage
from dependencies import get_storage, require_admin, validate_id
from websocket_manager import manager

logger = logging.getLogger(__name__)

router = APIRouter()

def event_payload(event: EventSchema) -> dict:
    return event.model_dump(mode="json", by_alias=True)

def reminder_message(event: EventSchema) -> str:
    category = f" ({event.category})" if event.category != "other" else ""
    return f"New Event{category}: {event.title}"

@router.get("", response_model=List[EventSchema])
async def get_events(storage: Storage = Depends(get_storage)):
    """List all events ordered by date and time"""
    return storage.get_events()

@router.get("/{event_id}", response_model=EventSchema)
async def get_event(event_id: str, storage: Storage = Depends(get_storage)):
    validate_id(event_id, "event")
    event = storage.get_event(event_id)
    if not event:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Event not found"
        )
    return event

@router.post("", response_model=EventSchema, status_code=status.HTTP_201_CREATED)
async def create_event(
    event_data: EventCreate,
    storage: Storage = Depends(get_storage),
    current_user: User = Depends(require_admin)
):
    """Create a new event (admin only), optionally scheduling a reminder"""
    event = storage.create_event(event_data.event_fields(), created_by_id=current_user.id)

    notification = None
    if event_data.send_notification:
        notify_at = combine_date_time(event.date, event.time, settings.CALENDAR_TIMEZONE)
        notify_at -= timedelta(minutes=event_data.notify_minutes_before)
        try:
            notification = storage.create_notification(
                message=event_data.notification_message or reminder_message(event),
                notify_at=notify_at,
                event_id=event.id
            )
        except Exception:
            # An event is only kept together with its requested reminder
            logger.error(f"Could not schedule reminder for event {event.id}, removing the event")
            storage.delete_event(event.id)
            raise
        logger.info(f"Scheduled notification {notification.id} for event {event.id}")

    logger.info(f"Event {event.id} created by {current_user.username}")
    await manager.publish("event_created", event=event_payload(event))
    if notification is not None:
        await manager.publish(
            "notification_created",
            notification=notification.model_dump(mode="json", by_alias=True)
        )

    return event

@router.put("/{event_id}", response_model=EventSchema)
async def update_event(
    event_id: str,
    event_update: EventUpdate,
    storage: Storage = Depends(get_storage),
    current_user: User = Depends(require_admin)
):
    """Update an existing event (admin only). Only provided fields change."""
    validate_id(event_id, "event")
    if not storage.get_event(event_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Event not found"
        )

    update_data = event_update.model_dump(exclude_unset=True)
    event = storage.update_event(event_id, update_data)
    await manager.publish("event_updated", event=event_payload(event))
    return event

@router.delete("/{event_id}", response_model=MessageResponse)
async def delete_event(
    event_id: str,
    storage: Storage = Depends(get_storage),
    current_user: User = Depends(require_admin)
):
    """Delete an event (admin only) together with its resources and notifications"""
    validate_id(event_id, "event")
    if not storage.get_event(event_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Event not found"
        )

    resources = storage.delete_resources_by_event_id(event_id)
    notifications = storage.delete_notifications_by_event_id(event_id)
    storage.delete_event(event_id)
    logger.info(
        f"Event {event_id} deleted by {current_user.username} "
        f"({resources} resources, {notifications} notifications)"
    )
    await manager.publish("event_deleted", eventId=event_id)
    return {"message": "Event deleted successfully"}
