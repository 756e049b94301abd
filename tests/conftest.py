import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401  registers the tables
from config import settings
from database import Base, get_db
from dependencies import get_mailer, get_password_hash
from mailer import EmailDeliveryError
from main import app
from storage import Storage

ADMIN_USERNAME = "admin@example.com"
ADMIN_PASSWORD = "admin123"
STUDENT_USERNAME = "student@example.com"
STUDENT_PASSWORD = "student123"


class FakeMailer:
    """Records messages instead of talking to SMTP."""

    def __init__(self):
        self.enabled = True
        self.sent = []
        self.fail_when = None

    def send(self, subject, text_body, html_body=None):
        if self.fail_when and self.fail_when in text_body:
            raise EmailDeliveryError("SMTP unavailable")
        self.sent.append((subject, text_body, html_body))

    def send_quietly(self, subject, text_body, html_body=None):
        try:
            self.send(subject, text_body, html_body)
            return True
        except EmailDeliveryError:
            return False


@pytest.fixture(autouse=True)
def test_settings(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "DISK_MOUNT_PATH", str(tmp_path / "disk"))
    monkeypatch.setattr(settings, "ADMIN_SIGNUP_IP", "testclient")
    monkeypatch.setattr(settings, "EMAIL_NOTIFICATIONS_ENABLED", False)
    monkeypatch.setattr(settings, "SESSION_SECRET", "test-secret")
    monkeypatch.setattr(settings, "CALENDAR_TIMEZONE", "UTC")
    return settings


@pytest.fixture
def upload_root(tmp_path):
    return tmp_path / "disk" / "uploads"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def storage(session_factory):
    db = session_factory()
    yield Storage(db)
    db.close()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def make_client(session_factory, mailer):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer

    def factory(**kwargs):
        return TestClient(app, **kwargs)

    yield factory
    app.dependency_overrides.clear()


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def admin_user(storage):
    return storage.create_user(ADMIN_USERNAME, get_password_hash(ADMIN_PASSWORD), is_admin=True)


@pytest.fixture
def student_user(storage):
    return storage.create_user(STUDENT_USERNAME, get_password_hash(STUDENT_PASSWORD), is_admin=False)


def login(client, username, password):
    response = client.post("/api/auth/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return client


@pytest.fixture
def admin_client(make_client, admin_user):
    return login(make_client(), ADMIN_USERNAME, ADMIN_PASSWORD)


@pytest.fixture
def student_client(make_client, student_user):
    return login(make_client(), STUDENT_USERNAME, STUDENT_PASSWORD)


QUIZ = {"title": "Quiz 1", "category": "quiz", "date": "2024-05-01", "time": "09:00"}


@pytest.fixture
def quiz_event(admin_client):
    response = admin_client.post("/api/events", json=QUIZ)
    assert response.status_code == 201, response.text
    return response.json()


def require_zone(name):
    """Skip the calling test when the host has no data for the named zone."""
    from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

    try:
        ZoneInfo(name)
    except ZoneInfoNotFoundError:
        pytest.skip(f"no time zone data for {name}")
