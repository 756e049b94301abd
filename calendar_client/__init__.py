from calendar_client.api import ApiError, CalendarApi
from calendar_client.state import AuthState, EventsState, NotificationsState

__all__ = ["ApiError", "CalendarApi", "AuthState", "EventsState", "NotificationsState"]
