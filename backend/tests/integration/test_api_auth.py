"""Integration tests for registration, login, refresh, logout and identity endpoints."""

from __future__ import annotations

from datetime import timedelta

from dreamshepherd.core.extensions import get_token_provider
from tests.factories.dreamer import DEFAULT_PASSWORD, DreamerFactory
from tests.helpers.http import (
    API,
    bearer,
    capture_intro,
    refresh_cookie,
    refresh_token_from,
    register,
)

AUTH = f"{API}/auth"


def _login(client, email, password=DEFAULT_PASSWORD):
    return client.post(f"{AUTH}/login", json={"email": email, "password": password})


# ----------------------------- Registration -----------------------------


def test_register_directly(client):
    response = register(client, email="New.Dreamer@Example.com", first_name="Nia")
    assert response.status_code == 201

    data = response.get_json()["data"]
    assert data["token_type"] == "bearer"
    assert data["expires_in"] == 15 * 60
    assert data["access_token"]
    assert "refresh_token" not in data
    assert "dream" not in data

    dreamer = data["dreamer"]
    assert dreamer["email"] == "new.dreamer@example.com"
    assert dreamer["display_name"] == "Nia"
    assert "password_hash" not in dreamer
    assert "token_version" not in dreamer

    cookie = refresh_cookie(response)
    assert cookie is not None
    assert "HttpOnly" in cookie
    assert "SameSite=Strict" in cookie
    assert "Path=/api/v1/auth" in cookie


def test_register_upgrades_intro_session(client):
    session = capture_intro(client, title="Sail the Atlantic", email="sailor@example.com")

    response = register(client, temp_token=session["token"], email="ignored@example.com")
    assert response.status_code == 201
    data = response.get_json()["data"]
    assert data["dreamer"]["email"] == "sailor@example.com"
    assert data["dreamer"]["onboarding_completed"] is True
    assert data["dreamer"]["upgraded_from"]["original_created_at"] is not None
    assert "intro_id" not in data["dreamer"]["upgraded_from"]
    assert data["dream"]["title"] == "Sail the Atlantic"
    assert data["dream"]["slug"] == "sail-the-atlantic"

    assert client.get(f"{AUTH}/intro/{session['token']}").status_code == 404


def test_register_duplicate_email(client):
    DreamerFactory(email="taken@example.com")
    response = register(client, email="TAKEN@example.com")
    assert response.status_code == 409
    assert response.get_json()["code"] == "email_taken"


def test_register_reports_all_violations(client):
    response = register(client, email="nope", password="short")
    assert response.status_code == 422
    assert set(response.get_json()["details"]["errors"]) == {"email", "password"}


# ----------------------------- Login / lockout -----------------------------


def test_login_success(client):
    dreamer = DreamerFactory()
    response = _login(client, dreamer.email)
    assert response.status_code == 200
    data = response.get_json()["data"]
    assert data["dreamer"]["id"] == dreamer.id
    assert data["dreamer"]["last_login_at"] is not None
    assert refresh_cookie(response) is not None


def test_login_wrong_password_and_unknown_email_look_alike(client):
    dreamer = DreamerFactory()
    wrong = _login(client, dreamer.email, "not-the-password")
    unknown = _login(client, "ghost@example.com")
    assert wrong.status_code == unknown.status_code == 401
    assert wrong.get_json()["code"] == unknown.get_json()["code"] == "unauthorized"


def test_login_lockout_after_repeated_failures(client):
    dreamer = DreamerFactory()
    for _ in range(5):
        assert _login(client, dreamer.email, "wrong-password").status_code == 401

    locked = _login(client, dreamer.email)
    assert locked.status_code == 423
    assert locked.get_json()["code"] == "account_locked"


# ----------------------------- Refresh / logout -----------------------------


def test_refresh_with_cookie(client):
    dreamer = DreamerFactory()
    _login(client, dreamer.email)

    response = client.post(f"{AUTH}/refresh", json={})
    assert response.status_code == 200
    access = response.get_json()["data"]["access_token"]
    assert refresh_cookie(response) is not None
    assert client.get(f"{AUTH}/me", headers=bearer(access)).status_code == 200


def test_refresh_with_body_fallback(app, client):
    dreamer = DreamerFactory()
    refresh_token = refresh_token_from(_login(client, dreamer.email))

    other = app.test_client()
    response = other.post(f"{AUTH}/refresh", json={"refresh_token": refresh_token})
    assert response.status_code == 200
    assert response.get_json()["data"]["dreamer"]["id"] == dreamer.id


def test_refresh_without_token(app):
    response = app.test_client().post(f"{AUTH}/refresh", json={})
    assert response.status_code == 401


def test_refresh_rejects_access_token(app, client):
    dreamer = DreamerFactory()
    access = _login(client, dreamer.email).get_json()["data"]["access_token"]
    response = app.test_client().post(f"{AUTH}/refresh", json={"refresh_token": access})
    assert response.status_code == 401


def test_logout_revokes_every_session(client):
    dreamer = DreamerFactory()
    access = _login(client, dreamer.email).get_json()["data"]["access_token"]

    response = client.post(f"{AUTH}/logout", json={})
    assert response.status_code == 200
    assert response.get_json()["data"] == {"logged_out": True}
    cleared = refresh_cookie(response)
    assert cleared is not None
    assert "Max-Age=0" in cleared or "Expires=Thu, 01 Jan 1970" in cleared

    assert client.get(f"{AUTH}/me", headers=bearer(access)).status_code == 401


def test_logout_without_token_still_succeeds(app):
    response = app.test_client().post(f"{AUTH}/logout", json={})
    assert response.status_code == 200


# ----------------------------- Profile -----------------------------


def test_me_requires_token(client):
    response = client.get(f"{AUTH}/me")
    assert response.status_code == 401
    assert response.mimetype == "application/problem+json"


def test_me_returns_dreamer_and_dreams(client):
    session = capture_intro(client, title="Climb Kilimanjaro", email="climber@example.com")
    access = register(client, temp_token=session["token"]).get_json()["data"]["access_token"]

    response = client.get(f"{AUTH}/me", headers=bearer(access))
    assert response.status_code == 200
    data = response.get_json()["data"]
    assert data["dreamer"]["email"] == "climber@example.com"
    assert data["dreamer"]["dream_count"] == 1
    assert [d["title"] for d in data["dreams"]] == ["Climb Kilimanjaro"]


def test_update_profile(client):
    dreamer = DreamerFactory()
    access = _login(client, dreamer.email).get_json()["data"]["access_token"]

    response = client.patch(
        f"{AUTH}/me", json={"display_name": "Stargazer", "theme": "dark"}, headers=bearer(access)
    )
    assert response.status_code == 200
    updated = response.get_json()["data"]["dreamer"]
    assert updated["display_name"] == "Stargazer"
    assert updated["preferences"]["theme"] == "dark"

    response = client.patch(f"{AUTH}/me", json={"theme": "neon"}, headers=bearer(access))
    assert response.status_code == 422
    assert "theme" in response.get_json()["details"]["errors"]


# ----------------------------- whoami -----------------------------


def test_whoami_anonymous(client):
    response = client.get(f"{AUTH}/whoami")
    assert response.status_code == 200
    assert response.get_json()["data"] == {"kind": "anonymous"}


def test_whoami_intro(client):
    session = capture_intro(client)
    data = client.get(f"{AUTH}/whoami", headers={"X-Intro-Token": session["token"]}).get_json()
    assert data["data"]["kind"] == "intro"
    assert data["data"]["session"]["token"] == session["token"]

    by_query = client.get(f"{AUTH}/whoami?token={session['token']}").get_json()
    assert by_query["data"]["kind"] == "intro"


def test_whoami_dreamer(client):
    dreamer = DreamerFactory()
    access = _login(client, dreamer.email).get_json()["data"]["access_token"]
    data = client.get(f"{AUTH}/whoami", headers=bearer(access)).get_json()["data"]
    assert data["kind"] == "dreamer"
    assert data["dreamer"]["id"] == dreamer.id


def test_whoami_expired_token(client):
    dreamer = DreamerFactory()
    expired = get_token_provider().create_access_token(
        identity=str(dreamer.id),
        additional_claims={"rv": 0},
        expires_delta=timedelta(seconds=-5),
    )
    response = client.get(f"{AUTH}/whoami", headers=bearer(expired))
    assert response.status_code == 401
    assert response.get_json()["code"] == "token_expired"


def test_register_accepts_nested_preferences(client):
    session = capture_intro(client, email="nested@example.com")
    response = register(
        client,
        temp_token=session["token"],
        first_name="Nell",
        preferences={"theme": "dark", "animation_speed": "fast"},
    )
    assert response.status_code == 201
    preferences = response.get_json()["data"]["dreamer"]["preferences"]
    assert preferences["theme"] == "dark"
    assert preferences["animation_speed"] == "fast"


def test_register_rejects_unknown_nested_preference(client):
    session = capture_intro(client, email="nested-bad@example.com")
    response = register(client, temp_token=session["token"], preferences={"theme": "neon"})
    assert response.status_code == 422
    assert "theme" in response.get_json()["details"]["errors"]


def test_update_profile_with_nested_preferences(client):
    dreamer = DreamerFactory()
    access = _login(client, dreamer.email).get_json()["data"]["access_token"]
    response = client.patch(
        f"{AUTH}/me",
        json={"preferences": {"shepherd_personality": "wise", "notifications": False}},
        headers=bearer(access),
    )
    assert response.status_code == 200
    preferences = response.get_json()["data"]["dreamer"]["preferences"]
    assert preferences["shepherd_personality"] == "wise"
    assert preferences["notifications"] is False
