"""Small HTTP helpers shared by the integration tests."""

from __future__ import annotations

from typing import Any

API = "/api/v1"


def bearer(token: str) -> dict[str, str]:
    """``Authorization`` header for an access token."""
    return {"Authorization": f"Bearer {token}"}


def capture_intro(client: Any, **payload: Any) -> dict[str, Any]:
    """POST an intro capture and return the session payload."""
    body = {"title": "Learn to paint", "vision": "Watercolours by the sea"}
    body.update(payload)
    response = client.post(f"{API}/auth/intro", json=body)
    assert response.status_code in (200, 201), response.get_json()
    return response.get_json()["data"]


def register(client: Any, **payload: Any) -> Any:
    """POST a registration and return the raw response."""
    body = {"password": "correct-horse-battery"}
    body.update(payload)
    return client.post(f"{API}/auth/register", json=body)


def refresh_cookie(response: Any, name: str = "refreshToken") -> str | None:
    """Return the raw ``Set-Cookie`` header for the refresh cookie, if any."""
    for header in response.headers.getlist("Set-Cookie"):
        if header.startswith(f"{name}="):
            return header
    return None


def refresh_token_from(response: Any) -> str:
    """Extract the refresh token value from a response's ``Set-Cookie``."""
    header = refresh_cookie(response)
    assert header is not None
    return header.split(";", 1)[0].split("=", 1)[1]
