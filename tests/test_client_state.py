from datetime import date, datetime, timezone

import pytest

from calendar_client import ApiError, AuthState, CalendarApi, EventsState, NotificationsState
from conftest import ADMIN_PASSWORD, ADMIN_USERNAME, QUIZ, require_zone
from schemas import Event


@pytest.fixture
def api(client):
    return CalendarApi(base_url="http://testserver", session=client)


@pytest.fixture
def admin_api(api, admin_user):
    api.login(ADMIN_USERNAME, ADMIN_PASSWORD)
    return api


def test_auth_state_lifecycle(api, admin_user):
    state = AuthState().check_auth(api)
    assert not state.is_authenticated

    state = state.login(api, ADMIN_USERNAME, "wrong")
    assert state.error == "Invalid credentials"
    assert not state.is_authenticated

    state = state.login(api, ADMIN_USERNAME, ADMIN_PASSWORD)
    assert state.is_authenticated and state.is_admin
    assert state.error is None
    assert AuthState().check_auth(api).user == state.user

    state = state.logout(api)
    assert state == AuthState()
    assert not AuthState().check_auth(api).is_authenticated


def test_events_state_create_update_delete(admin_api):
    state = EventsState().fetch(admin_api)
    assert state.events == ()

    state, event = state.create(admin_api, **QUIZ)
    assert [e.id for e in state.events] == [event.id]

    state = state.select(event).update(admin_api, event.id, location="Hall B")
    assert state.events[0].location == "Hall B"
    assert state.selected_event.location == "Hall B"

    state = state.delete(admin_api, event.id)
    assert state.events == ()
    assert state.selected_event is None


def test_events_state_create_raises_on_failure(api, student_user):
    from conftest import STUDENT_PASSWORD, STUDENT_USERNAME

    api.login(STUDENT_USERNAME, STUDENT_PASSWORD)

    with pytest.raises(ApiError) as excinfo:
        EventsState().create(api, **QUIZ)
    assert excinfo.value.status == 403


def test_events_state_records_errors(admin_api):
    state = EventsState().delete(admin_api, "a" * 32)

    assert state.error == "Event not found"


def test_events_state_queries(admin_api):
    state = EventsState()
    for title, day, time in [("Late", "2024-05-01", "15:00"), ("Early", "2024-05-01", "08:00"),
                             ("Past", "2024-04-01", "09:00"), ("Next", "2024-05-02", "09:00")]:
        state, _ = state.create(admin_api, **{**QUIZ, "title": title, "date": day, "time": time})

    assert [e.title for e in state.events_on_day(2024, 5, 1)] == ["Early", "Late"]
    now = datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)
    assert [e.title for e in state.upcoming(count=2, now=now)] == ["Late", "Next"]


def test_events_state_view_and_date():
    state = EventsState().set_current_view("week").set_current_date(date(2024, 5, 1))

    assert state.current_view == "week"
    assert state.current_date == date(2024, 5, 1)
    with pytest.raises(ValueError):
        state.set_current_view("year")


def test_notifications_state_mark_all(admin_api):
    state = NotificationsState()
    for message in ("one", "two"):
        state, _ = state.create(admin_api, message, datetime(2024, 4, 30, 9, 0, tzinfo=timezone.utc))
    assert state.unread_count == 2

    state = state.mark_all_as_read(admin_api)
    assert state.unread_count == 0

    fetched = NotificationsState().fetch(admin_api)
    assert all(n.sent for n in fetched.notifications)


def test_notifications_state_mark_missing(admin_api):
    state = NotificationsState().mark_as_read(admin_api, "b" * 32)

    assert state.error == "Notification not found"


def test_api_resource_round_trip(admin_api):
    event = admin_api.create_event(**QUIZ)

    resource = admin_api.upload_resource(event.id, "notes.txt", b"chapter 3", "text/plain")

    assert [r.id for r in admin_api.list_resources(event.id)] == [resource.id]
    assert admin_api.download_resource(resource.id) == b"chapter 3"
    admin_api.delete_resource(resource.id)
    assert admin_api.list_resources(event.id) == []


def test_api_send_now(admin_api, mailer):
    mailer.enabled = False

    assert admin_api.send_now("Heads up") == {"message": "Announcement processed.", "emailAttempted": False}


def test_upcoming_reads_event_times_in_calendar_timezone():
    require_zone("Asia/Kolkata")
    # 15:00 in Kolkata is 09:30 UTC
    lecture = Event(id="c" * 32, title="Lecture", category="other", date="2024-05-01", time="15:00")
    now = datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)

    assert EventsState(events=(lecture,)).upcoming(now=now) == (lecture,)
    assert EventsState(events=(lecture,), calendar_timezone="Asia/Kolkata").upcoming(now=now) == ()
