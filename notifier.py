"""
Scheduled notification dispatch.

A single polling loop owned by the application process: every interval it
loads the due notifications (unsent, notify time reached), emails each one
and marks it sent. A failure on one notification is logged and the rest of
the batch still goes out. Two processes running this loop against the same
database can both send a notification before either marks it.
"""
import asyncio
import logging
import time
from datetime import datetime
from html import escape
from typing import List, Optional, Tuple

from starlette.concurrency import run_in_threadpool

from config import settings
from database import SessionLocal
from dates import utcnow
from mailer import Mailer
from schemas import Event, Notification
from storage import Storage
from websocket_manager import ConnectionManager, manager as default_manager

logger = logging.getLogger(__name__)


def compose_reminder(notification: Notification, event: Optional[Event] = None) -> Tuple[str, str, str]:
    """Subject, text body and HTML body for a due notification."""
    event_details = ""
    if event:
        event_details = f' related to event "{event.title}" ({event.category})'
    scheduled = notification.notify_at.strftime("%Y-%m-%d %H:%M UTC")

    subject = f"Upcoming Reminder{event_details}"
    text_body = f"{notification.message}\n\nThis notification was scheduled for {scheduled}."
    html_body = (
        f"<p>{escape(notification.message)}</p>"
        f"<p><small>This notification was scheduled for {scheduled}{escape(event_details)}.</small></p>"
    )
    return subject, text_body, html_body


class NotificationDispatcher:
    def __init__(
        self,
        session_factory=SessionLocal,
        mailer: Optional[Mailer] = None,
        connection_manager: ConnectionManager = default_manager,
        interval: Optional[float] = None,
        throttle: Optional[float] = None,
    ):
        self.session_factory = session_factory
        self.mailer = mailer or Mailer(settings)
        self.connection_manager = connection_manager
        self.interval = settings.DISPATCH_INTERVAL_SECONDS if interval is None else interval
        self.throttle = settings.DISPATCH_THROTTLE_SECONDS if throttle is None else throttle
        self._task: Optional[asyncio.Task] = None

    def run_cycle(self, now: Optional[datetime] = None) -> List[str]:
        """Send every due notification once. Returns the ids marked sent."""
        now = now or utcnow()
        sent_ids = []
        db = self.session_factory()
        try:
            storage = Storage(db)
            due = storage.get_due_notifications(now)
            if not due:
                logger.debug("No due notifications found.")
                return sent_ids

            logger.info(f"Found {len(due)} due notifications.")
            for index, notification in enumerate(due):
                if index and self.throttle:
                    time.sleep(self.throttle)
                try:
                    event = storage.get_event(notification.event_id) if notification.event_id else None
                    self.mailer.send(*compose_reminder(notification, event))
                    if storage.mark_notification_as_sent(notification.id):
                        sent_ids.append(notification.id)
                    logger.info(f"Sent and marked notification {notification.id}")
                except Exception:
                    db.rollback()
                    logger.exception(f"Error processing notification {notification.id}")
        finally:
            db.close()
        return sent_ids

    async def run_forever(self):
        logger.info(f"Scheduled notification checker started (every {self.interval}s).")
        while True:
            try:
                sent_ids = await run_in_threadpool(self.run_cycle)
                for notification_id in sent_ids:
                    await self.connection_manager.publish("notification_sent", notificationId=notification_id)
            except Exception:
                logger.exception("Error fetching/processing scheduled notifications")
            await asyncio.sleep(self.interval)

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run_forever())
        return self._task

    async def stop(self):
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logger.info("Scheduled notification checker stopped.")
