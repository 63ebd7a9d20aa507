"""Dreamer (full account) model definition."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Enum, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from dreamshepherd.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin, UTCDateTime

if TYPE_CHECKING:
    from dreamshepherd.services._shared.ports.session_store import SessionRecord

    from .dream import Dream

# --- Preference vocabularies ---
THEMES = ("light", "dark", "auto")
ANIMATION_SPEEDS = ("slow", "normal", "fast")
SHEPHERD_PERSONALITIES = ("gentle", "encouraging", "wise")

Theme = Enum(*THEMES, name="theme")
AnimationSpeed = Enum(*ANIMATION_SPEEDS, name="animation_speed")
ShepherdPersonality = Enum(*SHEPHERD_PERSONALITIES, name="shepherd_personality")

EMAIL_UNIQUE_CONSTRAINT = "uq_dreamers_email"


class Dreamer(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    Registered account owning dreams.

    Fields
    ------
    email : str
        Login email. Stored normalized (lowercase, trimmed) and unique.
    password_hash : str
        Argon2id encoded credential. Deferred so ordinary reads never load it.
    token_version : int
        Revocation counter embedded in every JWT. Only ever increases.
    failed_login_attempts / lock_until
        Lockout state driven by :meth:`register_failed_login`.
    email_verification_token / password_reset_token
        SHA-256 digests of single-use opaque tokens (never the plain value).
    upgraded_from_*
        Provenance copied from the intro session this account was upgraded from.
    """

    __tablename__ = "dreamers"

    # Credentials
    email: Mapped[str] = mapped_column(String(254), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False, deferred=True)
    is_email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    email_verification_token: Mapped[str | None] = mapped_column(String(64))
    email_verification_expires: Mapped[datetime | None] = mapped_column(UTCDateTime())
    password_reset_token: Mapped[str | None] = mapped_column(String(64))
    password_reset_expires: Mapped[datetime | None] = mapped_column(UTCDateTime())

    # Lockout & revocation
    failed_login_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lock_until: Mapped[datetime | None] = mapped_column(UTCDateTime())
    last_login_at: Mapped[datetime | None] = mapped_column(UTCDateTime())
    token_version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Profile
    first_name: Mapped[str | None] = mapped_column(String(50))
    last_name: Mapped[str | None] = mapped_column(String(50))
    display_name: Mapped[str | None] = mapped_column(String(100))
    avatar_url: Mapped[str | None] = mapped_column(Text)
    onboarding_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    intro_completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime())
    journey_started_at: Mapped[datetime | None] = mapped_column(UTCDateTime())

    # Preferences
    theme: Mapped[str] = mapped_column(Theme, nullable=False, default="light")
    animation_speed: Mapped[str] = mapped_column(AnimationSpeed, nullable=False, default="slow")
    shepherd_personality: Mapped[str] = mapped_column(
        ShepherdPersonality, nullable=False, default="gentle"
    )
    notifications: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Provenance (intro session upgrade)
    upgraded_from_intro_id: Mapped[str | None] = mapped_column(String(64))
    upgraded_from_token: Mapped[str | None] = mapped_column(String(64))
    upgraded_original_created_at: Mapped[datetime | None] = mapped_column(UTCDateTime())
    upgraded_at: Mapped[datetime | None] = mapped_column(UTCDateTime())

    # Counters
    dream_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    goal_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    active_habits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    last_active_at: Mapped[datetime | None] = mapped_column(UTCDateTime())

    __table_args__ = (
        UniqueConstraint("email", name=EMAIL_UNIQUE_CONSTRAINT),
        Index("ix_dreamers_password_reset_token", "password_reset_token"),
        Index("ix_dreamers_email_verification_token", "email_verification_token"),
    )

    dreams: Mapped[list[Dream]] = relationship(
        "Dream",
        back_populates="dreamer",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    # -------------------- Factories --------------------
    @classmethod
    def from_intro_session(
        cls,
        record: SessionRecord,
        *,
        email: str,
        password_hash: str,
        now: datetime,
        first_name: str | None = None,
        last_name: str | None = None,
        display_name: str | None = None,
        theme: str | None = None,
        animation_speed: str | None = None,
        shepherd_personality: str | None = None,
        notifications: bool | None = None,
    ) -> Dreamer:
        """
        Build an onboarded account carrying the provenance of ``record``.

        :param record: Intro session being upgraded.
        :param email: Account email (the session's own email when it has one).
        :param password_hash: Already-hashed credential.
        :param now: Upgrade instant.
        :returns: Transient :class:`Dreamer` (not yet added to a session).
        """
        dreamer = cls(
            email=email,
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            display_name=display_name or first_name,
            onboarding_completed=True,
            intro_completed_at=record.intro_completed_at,
            journey_started_at=now,
            upgraded_from_intro_id=record.id,
            upgraded_from_token=record.token,
            upgraded_original_created_at=record.created_at,
            upgraded_at=now,
            last_active_at=now,
        )
        if theme is not None:
            dreamer.theme = theme
        if animation_speed is not None:
            dreamer.animation_speed = animation_speed
        if shepherd_personality is not None:
            dreamer.shepherd_personality = shepherd_personality
        if notifications is not None:
            dreamer.notifications = notifications
        return dreamer

    # -------------------- Lockout --------------------
    def is_locked(self, now: datetime) -> bool:
        """Return ``True`` while ``lock_until`` lies in the future."""
        return self.lock_until is not None and self.lock_until > now

    def register_failed_login(
        self, now: datetime, *, max_attempts: int, lockout: timedelta
    ) -> bool:
        """
        Count a failed password check and lock the account on the last allowed one.

        An expired lock is cleared before counting. Reaching ``max_attempts``
        sets ``lock_until`` and resets the counter to zero.

        :returns: ``True`` when this failure locked the account.
        :rtype: bool
        """
        if self.lock_until is not None and self.lock_until <= now:
            self.lock_until = None
            self.failed_login_attempts = 0

        self.failed_login_attempts = (self.failed_login_attempts or 0) + 1
        if self.failed_login_attempts >= max_attempts:
            self.lock_until = now + lockout
            self.failed_login_attempts = 0
            return True
        return False

    def register_successful_login(self, now: datetime) -> None:
        """Clear the lockout state and stamp login/activity times."""
        self.failed_login_attempts = 0
        self.lock_until = None
        self.last_login_at = now
        self.last_active_at = now

    # -------------------- Validators --------------------
    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        """
        Normalize and validate email.

        :raises ValueError: If email is missing or malformed.
        """
        if not value or not isinstance(value, str):
            raise ValueError("Email is required.")
        v = value.strip().lower()
        if "@" not in v or "." not in v.split("@")[-1]:
            raise ValueError("Email format looks invalid.")
        return v
