from config import settings
from conftest import ADMIN_PASSWORD, ADMIN_USERNAME, QUIZ


def test_signup_creates_user_without_exposing_password(client):
    response = client.post(
        "/api/auth/signup",
        json={"username": "new-admin", "password": "s3cret", "isAdmin": True},
    )

    assert response.status_code == 201
    user = response.json()["user"]
    assert user["username"] == "new-admin"
    assert user["isAdmin"] is True
    assert "password" not in user


def test_signup_refused_from_other_addresses(client, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_SIGNUP_IP", "203.0.113.7")

    response = client.post(
        "/api/auth/signup",
        json={"username": "intruder", "password": "x"},
        headers={"X-Forwarded-For": "203.0.113.7"},
    )

    assert response.status_code == 403


def test_signup_duplicate_username_conflicts(client, admin_user):
    response = client.post(
        "/api/auth/signup",
        json={"username": ADMIN_USERNAME, "password": "other"},
    )

    assert response.status_code == 409


def test_signup_stores_bcrypt_hash(client, storage):
    client.post("/api/auth/signup", json={"username": "hashme", "password": "plain"})

    stored = storage.get_user_credentials("hashme")
    assert stored.password != "plain"
    assert stored.password.startswith("$2")


def test_login_sets_session_and_current_user(client, admin_user):
    response = client.post(
        "/api/auth/login",
        json={"username": ADMIN_USERNAME, "password": ADMIN_PASSWORD},
    )

    assert response.status_code == 200
    assert response.json()["user"] == {
        "id": admin_user.id,
        "username": ADMIN_USERNAME,
        "isAdmin": True,
    }
    assert settings.SESSION_COOKIE_NAME in response.cookies

    me = client.get("/api/auth/user")
    assert me.status_code == 200
    assert me.json()["user"]["id"] == admin_user.id


def test_login_with_wrong_password_sets_no_cookie(client, admin_user):
    response = client.post(
        "/api/auth/login",
        json={"username": ADMIN_USERNAME, "password": "wrong"},
    )

    assert response.status_code == 401
    assert settings.SESSION_COOKIE_NAME not in response.cookies
    assert client.get("/api/auth/user").status_code == 401


def test_login_unknown_user(client):
    response = client.post("/api/auth/login", json={"username": "ghost", "password": "x"})

    assert response.status_code == 401


def test_login_requires_both_fields(client):
    response = client.post("/api/auth/login", json={"username": ADMIN_USERNAME})

    assert response.status_code == 400
    assert "password" in response.json()["detail"]


def test_logout_destroys_session(admin_client, storage):
    assert admin_client.get("/api/auth/user").status_code == 200

    response = admin_client.post("/api/auth/logout")

    assert response.status_code == 200
    assert admin_client.get("/api/auth/user").status_code == 401
    assert admin_client.post("/api/events", json=QUIZ).status_code == 401


def test_logout_invalidates_a_copied_cookie(make_client, admin_client):
    cookie = admin_client.cookies.get(settings.SESSION_COOKIE_NAME)
    admin_client.post("/api/auth/logout")

    replay = make_client()
    replay.cookies.set(settings.SESSION_COOKIE_NAME, cookie)
    assert replay.get("/api/auth/user").status_code == 401


def test_tampered_cookie_is_ignored(client):
    client.cookies.set(settings.SESSION_COOKIE_NAME, "not-a-token")

    assert client.get("/api/auth/user").status_code == 401


def test_admin_gate_rejects_anonymous_and_students(client, student_client):
    assert client.post("/api/events", json=QUIZ).status_code == 401
    assert student_client.post("/api/events", json=QUIZ).status_code == 403
