import re
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from dates import as_utc, to_naive_utc

ID_PATTERN = r"^[a-f0-9]{32}$"
DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"

EventCategory = Literal["deadline", "quiz", "other"]
NotifyOffset = Literal[0, 15, 30, 60, 120, 1440, 2880]

def is_valid_id(value: Optional[str]) -> bool:
    return bool(value) and re.fullmatch(r"[a-f0-9]{32}", value) is not None


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


# User schemas
class User(CamelModel):
    id: str
    username: str
    is_admin: bool = False

class UserWithPassword(User):
    password: str

class UserSignup(CamelModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)
    is_admin: bool = False

class UserLogin(CamelModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)

class AuthResponse(CamelModel):
    user: User

class SessionData(CamelModel):
    id: str
    user_id: str
    username: str
    is_admin: bool
    expires_at: datetime

    def to_user(self) -> User:
        return User(id=self.user_id, username=self.username, is_admin=self.is_admin)


# Event schemas
def _check_calendar_date(value: Optional[str]) -> Optional[str]:
    if value is not None:
        try:
            datetime.strptime(value, "%Y-%m-%d")
        except ValueError:
            raise ValueError("date must be a valid calendar date")
    return value

class EventBase(CamelModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    category: EventCategory
    date: str = Field(pattern=DATE_PATTERN)  # Format: YYYY-MM-DD
    time: str = Field(pattern=TIME_PATTERN)  # Format: HH:MM
    location: Optional[str] = None

    @field_validator("date")
    @classmethod
    def valid_date(cls, v):
        return _check_calendar_date(v)

class EventCreate(EventBase):
    # Optional reminder scheduled together with the event
    send_notification: bool = False
    notify_minutes_before: NotifyOffset = 0
    notification_message: Optional[str] = None

    def event_fields(self) -> dict:
        return self.model_dump(include=set(EventBase.model_fields))

class EventUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    category: Optional[EventCategory] = None
    date: Optional[str] = Field(None, pattern=DATE_PATTERN)
    time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    location: Optional[str] = None

    @field_validator("date")
    @classmethod
    def valid_date(cls, v):
        return _check_calendar_date(v)

    @model_validator(mode="after")
    def required_fields_not_null(self):
        for name in ("title", "category", "date", "time"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

class Event(EventBase):
    id: str
    created_by_id: Optional[str] = None


# Resource schemas
class Resource(CamelModel):
    id: str
    event_id: str
    filename: str
    original_name: str
    file_path: str
    file_type: str
    file_size: int
    uploaded_at: datetime
    uploaded_by_id: Optional[str] = None

    @field_validator("uploaded_at")
    @classmethod
    def attach_utc(cls, v):
        return as_utc(v)


# Notification schemas
class NotificationCreate(CamelModel):
    event_id: Optional[str] = Field(None, pattern=ID_PATTERN)
    message: str = Field(min_length=1)
    notify_at: datetime

    @field_validator("notify_at")
    @classmethod
    def naive_utc(cls, v):
        return to_naive_utc(v)

class Notification(CamelModel):
    id: str
    event_id: Optional[str] = None
    message: str
    notify_at: datetime
    sent: bool = False

    @field_validator("notify_at")
    @classmethod
    def attach_utc(cls, v):
        return as_utc(v)

class SendNowRequest(CamelModel):
    message: Optional[str] = None
    send_email: bool = False

class SendNowResponse(CamelModel):
    message: str
    email_attempted: bool


class MessageResponse(BaseModel):
    message: str
