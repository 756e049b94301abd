from datetime import datetime
from typing import List, Optional

import requests

from schemas import Event, Notification, Resource, User


class ApiError(Exception):
    def __init__(self, status: int, message: str):
        super().__init__(f"{status}: {message}")
        self.status = status
        self.message = message


class CalendarApi:
    """
    Thin wrapper over the calendar HTTP API.

    ``session`` is anything with a requests-style ``request`` method that
    keeps cookies between calls; a ``requests.Session`` by default.
    """

    def __init__(self, base_url: str = "http://localhost:8000", session=None, timeout: float = 10):
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout

    def _request(self, method: str, path: str, **kwargs):
        response = self.session.request(method, f"{self.base_url}{path}", timeout=self.timeout, **kwargs)
        if response.status_code >= 400:
            raise ApiError(response.status_code, self._error_message(response))
        return response

    @staticmethod
    def _error_message(response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or "Request failed"
        if isinstance(body, dict):
            return str(body.get("detail") or body.get("message") or body)
        return str(body)

    # Auth
    def signup(self, username: str, password: str, is_admin: bool = False) -> User:
        body = {"username": username, "password": password, "isAdmin": is_admin}
        return User.model_validate(self._request("POST", "/api/auth/signup", json=body).json()["user"])

    def login(self, username: str, password: str) -> User:
        body = {"username": username, "password": password}
        return User.model_validate(self._request("POST", "/api/auth/login", json=body).json()["user"])

    def logout(self) -> None:
        self._request("POST", "/api/auth/logout")

    def current_user(self) -> User:
        return User.model_validate(self._request("GET", "/api/auth/user").json()["user"])

    # Events
    def list_events(self) -> List[Event]:
        return [Event.model_validate(e) for e in self._request("GET", "/api/events").json()]

    def get_event(self, event_id: str) -> Event:
        return Event.model_validate(self._request("GET", f"/api/events/{event_id}").json())

    def create_event(self, **fields) -> Event:
        return Event.model_validate(self._request("POST", "/api/events", json=fields).json())

    def update_event(self, event_id: str, **fields) -> Event:
        return Event.model_validate(self._request("PUT", f"/api/events/{event_id}", json=fields).json())

    def delete_event(self, event_id: str) -> None:
        self._request("DELETE", f"/api/events/{event_id}")

    # Notifications
    def list_notifications(self, sort_by: str = "notifyAt", order: str = "desc") -> List[Notification]:
        params = {"sortBy": sort_by, "order": order}
        response = self._request("GET", "/api/notifications", params=params)
        return [Notification.model_validate(n) for n in response.json()]

    def create_notification(
        self, message: str, notify_at: datetime, event_id: Optional[str] = None
    ) -> Notification:
        body = {"message": message, "notifyAt": notify_at.isoformat()}
        if event_id:
            body["eventId"] = event_id
        return Notification.model_validate(self._request("POST", "/api/notifications", json=body).json())

    def mark_sent(self, notification_id: str) -> None:
        self._request("PUT", f"/api/notifications/{notification_id}/mark-sent")

    def send_now(self, message: str, send_email: bool = False) -> dict:
        body = {"message": message, "sendEmail": send_email}
        return self._request("POST", "/api/notifications/send-now", json=body).json()

    # Resources
    def list_resources(self, event_id: str) -> List[Resource]:
        response = self._request("GET", f"/api/events/{event_id}/resources")
        return [Resource.model_validate(r) for r in response.json()]

    def upload_resource(self, event_id: str, filename: str, content: bytes, content_type: str) -> Resource:
        files = {"file": (filename, content, content_type)}
        response = self._request("POST", f"/api/events/{event_id}/resources", files=files)
        return Resource.model_validate(response.json())

    def download_resource(self, resource_id: str) -> bytes:
        return self._request("GET", f"/api/resources/{resource_id}/download").content

    def delete_resource(self, resource_id: str) -> None:
        self._request("DELETE", f"/api/resources/{resource_id}")
