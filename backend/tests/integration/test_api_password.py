"""Integration tests for password change/reset and email verification."""

from __future__ import annotations

import pytest

from tests.factories.dreamer import DEFAULT_PASSWORD, DreamerFactory
from tests.helpers.http import API, bearer, refresh_cookie

AUTH = f"{API}/auth"


@pytest.fixture()
def outbox(app):
    """Capture delivered tickets instead of sending mail."""
    sent: list[tuple[str, object]] = []
    app.extensions["ticket_sender"] = lambda kind, ticket: sent.append((kind, ticket))
    yield sent
    app.extensions.pop("ticket_sender", None)


def _access_token(client, email, password=DEFAULT_PASSWORD):
    response = client.post(f"{AUTH}/login", json={"email": email, "password": password})
    assert response.status_code == 200
    return response.get_json()["data"]["access_token"]


def test_change_password_reissues_tokens(client):
    dreamer = DreamerFactory()
    old_access = _access_token(client, dreamer.email)

    response = client.post(
        f"{AUTH}/password/change",
        json={"current_password": DEFAULT_PASSWORD, "new_password": "brand-new-secret"},
        headers=bearer(old_access),
    )
    assert response.status_code == 200
    new_access = response.get_json()["data"]["access_token"]
    assert refresh_cookie(response) is not None

    assert client.get(f"{AUTH}/me", headers=bearer(old_access)).status_code == 401
    assert client.get(f"{AUTH}/me", headers=bearer(new_access)).status_code == 200
    _access_token(client, dreamer.email, "brand-new-secret")


def test_change_password_wrong_current(client):
    dreamer = DreamerFactory()
    access = _access_token(client, dreamer.email)
    response = client.post(
        f"{AUTH}/password/change",
        json={"current_password": "guess-again", "new_password": "brand-new-secret"},
        headers=bearer(access),
    )
    assert response.status_code == 401


def test_forgot_password_is_silent_for_unknown_email(client, outbox):
    response = client.post(f"{AUTH}/password/forgot", json={"email": "nobody@example.com"})
    assert response.status_code == 202
    assert response.get_json()["data"] == {"status": "accepted"}
    assert outbox == []


def test_reset_password_flow(client, outbox):
    dreamer = DreamerFactory()
    old_access = _access_token(client, dreamer.email)

    response = client.post(f"{AUTH}/password/forgot", json={"email": dreamer.email})
    assert response.status_code == 202
    [(kind, ticket)] = outbox
    assert kind == "password_reset"
    assert ticket.dreamer_id == dreamer.id

    response = client.post(
        f"{AUTH}/password/reset",
        json={"token": ticket.plain_token, "new_password": "after-the-reset"},
    )
    assert response.status_code == 200
    assert response.get_json()["data"]["dreamer"]["id"] == dreamer.id

    assert client.get(f"{AUTH}/me", headers=bearer(old_access)).status_code == 401
    _access_token(client, dreamer.email, "after-the-reset")

    reused = client.post(
        f"{AUTH}/password/reset",
        json={"token": ticket.plain_token, "new_password": "after-the-reset-2"},
    )
    assert reused.status_code == 401


def test_reset_password_unknown_token(client):
    response = client.post(
        f"{AUTH}/password/reset", json={"token": "not-a-token", "new_password": "whatever-long"}
    )
    assert response.status_code == 401
    assert response.get_json()["code"] == "unauthorized"


def test_email_verification_flow(client, outbox):
    dreamer = DreamerFactory()
    access = _access_token(client, dreamer.email)

    response = client.post(f"{AUTH}/email/verification", headers=bearer(access))
    assert response.status_code == 202
    [(kind, ticket)] = outbox
    assert kind == "email_verification"
    assert ticket.email == dreamer.email

    response = client.post(f"{AUTH}/email/verify", json={"token": ticket.plain_token})
    assert response.status_code == 200
    assert response.get_json()["data"]["dreamer"]["is_email_verified"] is True

    again = client.post(f"{AUTH}/email/verification", headers=bearer(access))
    assert again.status_code == 409


def test_email_verification_requires_auth(client):
    assert client.post(f"{AUTH}/email/verification").status_code == 401
