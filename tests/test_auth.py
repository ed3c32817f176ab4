from datetime import timedelta

from jose import jwt

from chatforge.core.config import settings
from chatforge.core.security import create_access_token


def test_register_sets_http_only_session_cookie(client):
    response = client.post(
        "/auth/register",
        json={"email": "Alice@Example.com", "password": "secret123", "name": "  Alice  "},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["user"]["email"] == "alice@example.com"
    assert body["user"]["name"] == "Alice"

    set_cookie = response.headers["set-cookie"]
    assert set_cookie.startswith(f"{settings.SESSION_COOKIE_NAME}=")
    assert "HttpOnly" in set_cookie
    assert "Path=/" in set_cookie
    assert f"Max-Age={7 * 24 * 60 * 60}" in set_cookie


def test_duplicate_email_is_rejected_case_insensitively(client, register):
    register(email="bob@example.com")
    client.cookies.clear()

    response = client.post(
        "/auth/register",
        json={"email": "BOB@example.com", "password": "another1", "name": "Bobby"},
    )

    assert response.status_code == 409


def test_short_password_is_rejected(client):
    response = client.post(
        "/auth/register",
        json={"email": "carol@example.com", "password": "12345", "name": "Carol"},
    )

    assert response.status_code == 400
    assert "6 characters" in response.json()["detail"]


def test_missing_fields_are_rejected_with_400(client):
    response = client.post("/auth/register", json={"email": "dan@example.com", "name": "Dan"})
    assert response.status_code == 400
    assert response.json()["detail"] == "password is required"

    response = client.post(
        "/auth/register",
        json={"email": "dan@example.com", "password": "secret123", "name": "   "},
    )
    assert response.status_code == 400


def test_invalid_email_is_rejected(client):
    response = client.post(
        "/auth/register",
        json={"email": "not-an-email", "password": "secret123", "name": "Eve"},
    )

    assert response.status_code == 400


def test_me_returns_profile_and_usage_counters(client, register):
    user = register()

    response = client.get("/auth/me")

    assert response.status_code == 200
    profile = response.json()["user"]
    assert profile["id"] == user["id"]
    assert profile["email"] == "alice@example.com"
    assert profile["total_tokens_used"] == 0
    assert profile["prompt_tokens_used"] == 0
    assert profile["completion_tokens_used"] == 0


def test_me_requires_session(client):
    assert client.get("/auth/me").status_code == 401


def test_logout_clears_session(client, register):
    register()

    response = client.post("/auth/logout")

    assert response.status_code == 200
    assert client.get("/auth/me").status_code == 401


def test_login_with_valid_and_invalid_credentials(client, register):
    register(email="frank@example.com", password="hunter22")
    client.cookies.clear()

    bad = client.post("/auth/login", json={"email": "frank@example.com", "password": "wrong-pass"})
    assert bad.status_code == 401
    assert client.get("/auth/me").status_code == 401

    good = client.post("/auth/login", json={"email": "FRANK@example.com", "password": "hunter22"})
    assert good.status_code == 200
    assert good.json()["user"]["email"] == "frank@example.com"
    assert client.get("/auth/me").status_code == 200


def test_check_reports_session_state(client, register):
    anonymous = client.get("/auth/check")
    assert anonymous.status_code == 401
    assert anonymous.json() == {"authenticated": False}

    register()
    assert client.get("/auth/check").json() == {"authenticated": True}


def test_forged_or_expired_cookie_is_treated_as_anonymous(client, register):
    user = register()
    client.cookies.clear()

    forged = jwt.encode({"sub": user["id"]}, "some-other-secret", algorithm=settings.ALGORITHM)
    expired = create_access_token({"sub": user["id"]}, expires_delta=timedelta(seconds=-1))

    for token in (forged, expired, "not-a-jwt"):
        response = client.get("/auth/me", headers={"Cookie": f"{settings.SESSION_COOKIE_NAME}={token}"})
        assert response.status_code == 401
