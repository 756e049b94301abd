import uuid
from sqlalchemy import Column, String, DateTime, Text, Boolean, Integer
from sqlalchemy.sql import func
from database import Base

def generate_id() -> str:
    return uuid.uuid4().hex

# Reference fields (event_id, created_by_id, ...) are plain columns: the
# application checks them, the schema does not enforce them.

class User(Base):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=generate_id)
    username = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)
    is_admin = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, server_default=func.now())

class Event(Base):
    __tablename__ = "events"

    id = Column(String(32), primary_key=True, default=generate_id)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(16), nullable=False)  # deadline, quiz or other
    date = Column(String(10), nullable=False)  # Format: YYYY-MM-DD
    time = Column(String(5), nullable=False)  # Format: HH:MM
    location = Column(String, nullable=True)
    created_by_id = Column(String(32), index=True, nullable=True)

class Resource(Base):
    __tablename__ = "resources"

    id = Column(String(32), primary_key=True, default=generate_id)
    event_id = Column(String(32), index=True, nullable=False)
    filename = Column(String, nullable=False)
    original_name = Column(String, nullable=False)
    file_path = Column(String, nullable=False)  # relative to the disk mount
    file_type = Column(String, nullable=False)
    file_size = Column(Integer, nullable=False)
    uploaded_at = Column(DateTime, nullable=False)
    uploaded_by_id = Column(String(32), nullable=True)

class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(32), primary_key=True, default=generate_id)
    event_id = Column(String(32), index=True, nullable=True)
    message = Column(Text, nullable=False)
    notify_at = Column(DateTime, index=True, nullable=False)  # naive UTC
    sent = Column(Boolean, nullable=False, default=False)

class UserSession(Base):
    __tablename__ = "sessions"

    id = Column(String(32), primary_key=True, default=generate_id)
    user_id = Column(String(32), index=True, nullable=False)
    username = Column(String, nullable=False)
    is_admin = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, index=True, nullable=False)
