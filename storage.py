"""
Storage adapter.

Translates between SQLAlchemy rows and the pydantic records in ``schemas``.
Callers only ever see string identifiers and plain records; relationships
between entities are enforced here and in the routes, not by the database.
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

import models
import schemas
from dates import to_naive_utc, utcnow
from file_upload import StoredFile, delete_file

logger = logging.getLogger(__name__)

NOTIFICATION_SORT_FIELDS = {
    "notify_at": models.Notification.notify_at,
    "message": models.Notification.message,
    "sent": models.Notification.sent,
}


class Storage:
    def __init__(self, db: Session):
        self.db = db

    # Users
    def get_user(self, user_id: str) -> Optional[schemas.User]:
        user = self.db.get(models.User, user_id)
        return schemas.User.model_validate(user) if user else None

    def get_user_by_username(self, username: str) -> Optional[schemas.User]:
        user = self._user_row(username)
        return schemas.User.model_validate(user) if user else None

    def get_user_credentials(self, username: str) -> Optional[schemas.UserWithPassword]:
        user = self._user_row(username)
        return schemas.UserWithPassword.model_validate(user) if user else None

    def create_user(self, username: str, password_hash: str, is_admin: bool = False) -> schemas.User:
        user = models.User(username=username, password=password_hash, is_admin=is_admin)
        self._save(user)
        return schemas.User.model_validate(user)

    def count_users(self) -> int:
        return self.db.query(models.User).count()

    def _user_row(self, username: str):
        return self.db.query(models.User).filter(models.User.username == username).first()

    # Events
    def get_events(self) -> List[schemas.Event]:
        events = (
            self.db.query(models.Event)
            .order_by(models.Event.date.asc(), models.Event.time.asc())
            .all()
        )
        return [schemas.Event.model_validate(e) for e in events]

    def get_event(self, event_id: str) -> Optional[schemas.Event]:
        event = self.db.get(models.Event, event_id)
        return schemas.Event.model_validate(event) if event else None

    def create_event(self, data: dict, created_by_id: Optional[str] = None) -> schemas.Event:
        event = models.Event(**data, created_by_id=created_by_id)
        self._save(event)
        return schemas.Event.model_validate(event)

    def update_event(self, event_id: str, patch: dict) -> Optional[schemas.Event]:
        event = self.db.get(models.Event, event_id)
        if not event:
            return None
        for field, value in patch.items():
            setattr(event, field, value)
        self._save(event)
        return schemas.Event.model_validate(event)

    def delete_event(self, event_id: str) -> bool:
        deleted = self.db.query(models.Event).filter(models.Event.id == event_id).delete()
        self.db.commit()
        return deleted > 0

    # Resources
    def get_resources_by_event_id(self, event_id: str) -> List[schemas.Resource]:
        resources = (
            self.db.query(models.Resource)
            .filter(models.Resource.event_id == event_id)
            .order_by(models.Resource.uploaded_at.asc())
            .all()
        )
        return [schemas.Resource.model_validate(r) for r in resources]

    def get_resource(self, resource_id: str) -> Optional[schemas.Resource]:
        resource = self.db.get(models.Resource, resource_id)
        return schemas.Resource.model_validate(resource) if resource else None

    def create_resource(
        self, event_id: str, stored: StoredFile, uploaded_by_id: Optional[str] = None
    ) -> schemas.Resource:
        resource = models.Resource(
            event_id=event_id,
            filename=stored.filename,
            original_name=stored.original_name,
            file_path=stored.file_path,
            file_type=stored.file_type,
            file_size=stored.file_size,
            uploaded_at=to_naive_utc(utcnow()),
            uploaded_by_id=uploaded_by_id,
        )
        self._save(resource)
        return schemas.Resource.model_validate(resource)

    def delete_resource(self, resource_id: str) -> bool:
        deleted = self.db.query(models.Resource).filter(models.Resource.id == resource_id).delete()
        self.db.commit()
        return deleted > 0

    def delete_resources_by_event_id(self, event_id: str) -> int:
        """Delete an event's resources, files first. File failures are logged and skipped."""
        query = self.db.query(models.Resource).filter(models.Resource.event_id == event_id)
        for resource in query.all():
            try:
                delete_file(resource.file_path)
            except (OSError, ValueError) as e:
                logger.warning(
                    f"Failed to delete file {resource.file_path} for event {event_id}: {e}"
                )
        deleted = query.delete()
        self.db.commit()
        return deleted

    # Notifications
    def get_notifications(self, sort_by: str = "notify_at", order: str = "desc") -> List[schemas.Notification]:
        column = NOTIFICATION_SORT_FIELDS.get(sort_by, models.Notification.notify_at)
        ordering = column.asc() if order == "asc" else column.desc()
        notifications = self.db.query(models.Notification).order_by(ordering).all()
        return [schemas.Notification.model_validate(n) for n in notifications]

    def get_notification(self, notification_id: str) -> Optional[schemas.Notification]:
        notification = self.db.get(models.Notification, notification_id)
        return schemas.Notification.model_validate(notification) if notification else None

    def create_notification(
        self, message: str, notify_at: datetime, event_id: Optional[str] = None
    ) -> schemas.Notification:
        notification = models.Notification(
            event_id=event_id,
            message=message,
            notify_at=to_naive_utc(notify_at),
            sent=False,
        )
        self._save(notification)
        return schemas.Notification.model_validate(notification)

    def get_due_notifications(self, now: datetime) -> List[schemas.Notification]:
        notifications = (
            self.db.query(models.Notification)
            .filter(
                models.Notification.sent.is_(False),
                models.Notification.notify_at <= to_naive_utc(now),
            )
            .order_by(models.Notification.notify_at.asc())
            .all()
        )
        return [schemas.Notification.model_validate(n) for n in notifications]

    def mark_notification_as_sent(self, notification_id: str) -> bool:
        # Conditional update: only the call that flips the flag reports True
        updated = (
            self.db.query(models.Notification)
            .filter(
                models.Notification.id == notification_id,
                models.Notification.sent.is_(False),
            )
            .update({models.Notification.sent: True}, synchronize_session=False)
        )
        self.db.commit()
        return updated > 0

    def delete_notifications_by_event_id(self, event_id: str) -> int:
        deleted = (
            self.db.query(models.Notification)
            .filter(models.Notification.event_id == event_id)
            .delete()
        )
        self.db.commit()
        return deleted

    # Sessions
    def create_session(self, user: schemas.User, expires_at: datetime) -> schemas.SessionData:
        session = models.UserSession(
            user_id=user.id,
            username=user.username,
            is_admin=user.is_admin,
            created_at=to_naive_utc(utcnow()),
            expires_at=to_naive_utc(expires_at),
        )
        self._save(session)
        return schemas.SessionData.model_validate(session)

    def get_session(self, session_id: str) -> Optional[schemas.SessionData]:
        session = self.db.get(models.UserSession, session_id)
        if not session:
            return None
        if session.expires_at <= to_naive_utc(utcnow()):
            self.delete_session(session_id)
            return None
        return schemas.SessionData.model_validate(session)

    def delete_session(self, session_id: str) -> bool:
        deleted = (
            self.db.query(models.UserSession)
            .filter(models.UserSession.id == session_id)
            .delete()
        )
        self.db.commit()
        return deleted > 0

    def purge_expired_sessions(self, now: datetime) -> int:
        deleted = (
            self.db.query(models.UserSession)
            .filter(models.UserSession.expires_at <= to_naive_utc(now))
            .delete()
        )
        self.db.commit()
        return deleted

    def _save(self, row) -> None:
        try:
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
        except Exception:
            self.db.rollback()
            raise
