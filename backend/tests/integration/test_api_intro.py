"""Integration tests for the intro session endpoints."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from tests.factories.dreamer import DreamerFactory
from tests.helpers.http import API, capture_intro

INTRO = f"{API}/auth/intro"


def test_capture_creates_session(client):
    reminder = (datetime.now(UTC) + timedelta(days=1)).isoformat()
    response = client.post(
        INTRO,
        json={"title": "Visit Kyoto", "vision": "Temples", "email": "kyoto@example.com",
              "reminder_at": reminder},
    )
    assert response.status_code == 201
    body = response.get_json()
    assert body["created"] is True
    data = body["data"]
    assert data["title"] == "Visit Kyoto"
    assert data["email"] == "kyoto@example.com"
    assert data["reminder_sent"] is False
    assert data["return_url"].endswith(f"token={data['token']}")
    assert len(data["token"]) == 64


def test_recapture_with_same_email_updates(client):
    first = capture_intro(client, email="again@example.com")
    response = client.post(INTRO, json={"title": "Second take", "email": "AGAIN@example.com"})
    assert response.status_code == 200
    body = response.get_json()
    assert body["created"] is False
    assert body["data"]["token"] == first["token"]
    assert body["data"]["title"] == "Second take"


def test_capture_refuses_registered_email(client):
    DreamerFactory(email="member@example.com")
    response = client.post(INTRO, json={"title": "Hi", "email": "member@example.com"})
    assert response.status_code == 409
    assert response.get_json()["code"] == "email_taken"


def test_capture_missing_title_is_422(client):
    response = client.post(INTRO, json={"vision": "no title"})
    assert response.status_code == 422
    problem = response.get_json()
    assert problem["code"] == "validation_error"
    assert "title" in problem["details"]["errors"]
    assert response.mimetype == "application/problem+json"


def test_capture_reports_every_rule(client):
    response = client.post(
        INTRO,
        json={"title": "t" * 201, "email": "broken", "reminder_at": "2001-01-01T00:00:00Z"},
    )
    assert response.status_code == 422
    errors = response.get_json()["details"]["errors"]
    assert set(errors) == {"title", "email", "reminder_at"}


def test_get_and_update_session(client):
    created = capture_intro(client)
    token = created["token"]

    response = client.get(f"{INTRO}/{token}")
    assert response.status_code == 200
    assert response.get_json()["data"]["title"] == created["title"]

    response = client.put(f"{INTRO}/{token}", json={"title": "Paint oils", "reminder_at": None})
    assert response.status_code == 200
    data = response.get_json()["data"]
    assert data["title"] == "Paint oils"
    assert data["reminder_at"] is None
    assert data["vision"] == created["vision"]


def test_unknown_session_is_404(client):
    response = client.get(f"{INTRO}/{'0' * 64}")
    assert response.status_code == 404
    assert response.get_json()["code"] == "not_found"


def test_upgrade_preview_and_prompt(client):
    token = capture_intro(client, email="preview@example.com")["token"]

    preview = client.get(f"{INTRO}/{token}/upgrade-preview").get_json()["data"]
    assert preview["can_upgrade"] is True
    assert preview["email_already_registered"] is False
    assert preview["session"]["upgrade_prompt_shown"] is False

    assert client.post(f"{INTRO}/{token}/upgrade-prompt").status_code == 204
    assert client.get(f"{INTRO}/{token}").get_json()["data"]["upgrade_prompt_shown"] is True
