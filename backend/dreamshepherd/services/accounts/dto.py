"""
DTOs for AccountService.

Outputs are the client-safe account view: no credential, no single-use token
digests, no intro bearer token.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

# ---------------------------- Config ---------------------------------- #


@dataclass(frozen=True, slots=True)
class LoginPolicy:
    """
    Lockout and single-use token lifetimes.

    :param max_attempts: Consecutive failures that lock the account.
    :type max_attempts: int
    :param lockout: Lock window length.
    :type lockout: timedelta
    :param reset_ttl: Password-reset token lifetime.
    :type reset_ttl: timedelta
    :param verification_ttl: Email-verification token lifetime.
    :type verification_ttl: timedelta
    """

    max_attempts: int = 5
    lockout: timedelta = timedelta(hours=2)
    reset_ttl: timedelta = timedelta(minutes=10)
    verification_ttl: timedelta = timedelta(hours=24)


# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class RegisterIn:
    """
    Direct registration (no intro session).

    :param email: Account email.
    :type email: str
    :param password: Raw password (at least 8 characters).
    :type password: str
    """

    email: str
    password: str
    first_name: str | None = None
    last_name: str | None = None
    display_name: str | None = None


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param email: Account email (normalized by the service).
    :type email: str
    :param password: Raw password (to be verified).
    :type password: str
    """

    email: str
    password: str


@dataclass(frozen=True, slots=True)
class ProfileUpdateIn:
    """Profile and preference edits; ``None`` leaves a field untouched."""

    first_name: str | None = None
    last_name: str | None = None
    display_name: str | None = None
    avatar_url: str | None = None
    theme: str | None = None
    animation_speed: str | None = None
    shepherd_personality: str | None = None
    notifications: bool | None = None


@dataclass(frozen=True, slots=True)
class PasswordChangeIn:
    current_password: str
    new_password: str


@dataclass(frozen=True, slots=True)
class PasswordResetIn:
    """
    :param token: Plain opaque reset token received out of band.
    :type token: str
    :param new_password: Replacement password.
    :type new_password: str
    """

    token: str
    new_password: str


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class PreferencesOut:
    theme: str
    animation_speed: str
    shepherd_personality: str
    notifications: bool


@dataclass(frozen=True, slots=True)
class ProvenanceOut:
    """
    Where an upgraded account came from.

    :param intro_id: Id of the intro session that was upgraded.
    :param original_created_at: When that session was first captured.
    :param upgraded_at: Upgrade instant.
    """

    intro_id: str | None
    original_created_at: datetime | None
    upgraded_at: datetime | None


@dataclass(frozen=True, slots=True)
class AccountOut:
    """
    Client-safe account view.

    ``token_version`` is the current revocation counter; it is embedded in
    issued tokens but never rendered by the API schemas.
    """

    id: int
    email: str
    is_email_verified: bool
    first_name: str | None
    last_name: str | None
    display_name: str | None
    avatar_url: str | None
    onboarding_completed: bool
    intro_completed_at: datetime | None
    journey_started_at: datetime | None
    preferences: PreferencesOut
    provenance: ProvenanceOut | None
    dream_count: int
    goal_count: int
    active_habits: int
    token_version: int
    last_login_at: datetime | None
    last_active_at: datetime | None
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True, slots=True)
class DreamOut:
    id: str
    slug: str
    title: str
    vision: str
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True, slots=True)
class PasswordResetTicketOut:
    """
    A freshly issued reset token, to be delivered out of band.

    :param plain_token: Plain token (only its digest is stored).
    :param expires_at: End of validity.
    """

    dreamer_id: int
    email: str
    plain_token: str
    expires_at: datetime


@dataclass(frozen=True, slots=True)
class VerificationTicketOut:
    """A freshly issued email-verification token, to be delivered out of band."""

    dreamer_id: int
    email: str
    plain_token: str
    expires_at: datetime
