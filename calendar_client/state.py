"""
Client-side application state.

Each state object is immutable and owned by whoever holds it. Actions take
the API to talk to and return the next state; request failures are
recorded in ``error`` rather than raised. ``create`` is the exception: the
caller needs the created record, so it returns ``(state, record)`` and lets
``ApiError`` propagate.
"""
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Optional, Tuple

from calendar_client.api import ApiError, CalendarApi
from dates import as_utc, combine_date_time, utcnow
from schemas import Event, Notification, User

VIEWS = ("month", "week", "day")


@dataclass(frozen=True)
class AuthState:
    user: Optional[User] = None
    error: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def is_admin(self) -> bool:
        return bool(self.user and self.user.is_admin)

    def login(self, api: CalendarApi, username: str, password: str) -> "AuthState":
        try:
            return AuthState(user=api.login(username, password))
        except ApiError as e:
            return replace(self, error=e.message)

    def logout(self, api: CalendarApi) -> "AuthState":
        try:
            api.logout()
        except ApiError as e:
            return replace(self, error=e.message)
        return AuthState()

    def check_auth(self, api: CalendarApi) -> "AuthState":
        try:
            return AuthState(user=api.current_user())
        except ApiError as e:
            if e.status == 401:
                return AuthState()
            return replace(self, error=e.message)


@dataclass(frozen=True)
class EventsState:
    events: Tuple[Event, ...] = ()
    error: Optional[str] = None
    current_date: date = field(default_factory=date.today)
    current_view: str = "month"
    selected_event: Optional[Event] = None
    # Zone the event date/time strings are written in, as CALENDAR_TIMEZONE on the server
    calendar_timezone: str = "UTC"

    def fetch(self, api: CalendarApi) -> "EventsState":
        try:
            return replace(self, events=tuple(api.list_events()), error=None)
        except ApiError as e:
            return replace(self, error=e.message)

    def create(self, api: CalendarApi, **fields) -> Tuple["EventsState", Event]:
        event = api.create_event(**fields)
        return replace(self, events=self.events + (event,), error=None), event

    def update(self, api: CalendarApi, event_id: str, **fields) -> "EventsState":
        try:
            updated = api.update_event(event_id, **fields)
        except ApiError as e:
            return replace(self, error=e.message)
        events = tuple(updated if e.id == event_id else e for e in self.events)
        selected = updated if self.selected_event and self.selected_event.id == event_id else self.selected_event
        return replace(self, events=events, selected_event=selected, error=None)

    def delete(self, api: CalendarApi, event_id: str) -> "EventsState":
        try:
            api.delete_event(event_id)
        except ApiError as e:
            return replace(self, error=e.message)
        selected = None if self.selected_event and self.selected_event.id == event_id else self.selected_event
        return replace(
            self,
            events=tuple(e for e in self.events if e.id != event_id),
            selected_event=selected,
            error=None,
        )

    def set_current_date(self, value: date) -> "EventsState":
        return replace(self, current_date=value)

    def set_current_view(self, view: str) -> "EventsState":
        if view not in VIEWS:
            raise ValueError(f"view must be one of {VIEWS}")
        return replace(self, current_view=view)

    def select(self, event: Optional[Event]) -> "EventsState":
        return replace(self, selected_event=event)

    def events_on_day(self, year: int, month: int, day: int) -> Tuple[Event, ...]:
        key = f"{year:04d}-{month:02d}-{day:02d}"
        return tuple(sorted((e for e in self.events if e.date == key), key=lambda e: e.time))

    def upcoming(self, count: int = 5, now: Optional[datetime] = None) -> Tuple[Event, ...]:
        now = as_utc(now) if now else utcnow()
        ahead = [
            e for e in self.events
            if combine_date_time(e.date, e.time, self.calendar_timezone) >= now
        ]
        ahead.sort(key=lambda e: (e.date, e.time))
        return tuple(ahead[:count])


@dataclass(frozen=True)
class NotificationsState:
    notifications: Tuple[Notification, ...] = ()
    error: Optional[str] = None

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self.notifications if not n.sent)

    def fetch(self, api: CalendarApi) -> "NotificationsState":
        try:
            return replace(self, notifications=tuple(api.list_notifications()), error=None)
        except ApiError as e:
            return replace(self, error=e.message)

    def create(
        self, api: CalendarApi, message: str, notify_at: datetime, event_id: Optional[str] = None
    ) -> Tuple["NotificationsState", Notification]:
        notification = api.create_notification(message, notify_at, event_id)
        return replace(self, notifications=self.notifications + (notification,), error=None), notification

    def mark_as_read(self, api: CalendarApi, notification_id: str) -> "NotificationsState":
        try:
            api.mark_sent(notification_id)
        except ApiError as e:
            return replace(self, error=e.message)
        return replace(self, notifications=self._with_sent({notification_id}), error=None)

    def mark_all_as_read(self, api: CalendarApi) -> "NotificationsState":
        marked = set()
        for notification in self.notifications:
            if notification.sent:
                continue
            try:
                api.mark_sent(notification.id)
            except ApiError as e:
                return replace(self, notifications=self._with_sent(marked), error=e.message)
            marked.add(notification.id)
        return replace(self, notifications=self._with_sent(marked), error=None)

    def _with_sent(self, ids) -> Tuple[Notification, ...]:
        return tuple(
            n.model_copy(update={"sent": True}) if n.id in ids else n
            for n in self.notifications
        )
