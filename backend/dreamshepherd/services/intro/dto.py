"""
DTOs for IntroSessionService.

Contracts for capturing and maintaining the anonymous intro session that holds
a visitor's first dream until they register.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

# --------------------------------------------------------------------------- #
# Sentinel for partial updates
# --------------------------------------------------------------------------- #


class _Unset:
    """Marker for "field not provided" (distinct from an explicit ``None``)."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()

# --------------------------------------------------------------------------- #
# Config
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class IntroPolicy:
    """
    Intro session lifecycle settings.

    :param ttl_days: Session lifetime, also used when re-capturing.
    :type ttl_days: int
    :param default_reminder_days: Reminder offset when none is chosen.
    :type default_reminder_days: int
    :param client_base_url: Front-end origin for the "continue" link.
    :type client_base_url: str
    :param missed_reminder_grace: Overdue reminders older than this are abandoned.
    :type missed_reminder_grace: timedelta
    """

    ttl_days: int = 30
    default_reminder_days: int = 2
    client_base_url: str = "http://localhost:5173"
    missed_reminder_grace: timedelta = timedelta(hours=24)

    def __post_init__(self) -> None:
        if self.ttl_days < 1:
            raise ValueError(f"ttl_days must be at least 1, got {self.ttl_days}")


# --------------------------------------------------------------------------- #
# Input
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class IntroCaptureIn:
    """
    Input for capturing (or re-capturing) an intro session.

    :param title: Dream title (required, at most 200 characters).
    :type title: str
    :param vision: Vision text (at most 10000 characters).
    :type vision: str
    :param email: Optional email; re-capturing with the same email updates
        the existing session instead of creating another one.
    :type email: str | None
    :param reminder_at: Optional reminder instant (must be in the future).
    :type reminder_at: datetime | None
    :param intro_completed_at: When the intro flow was finished.
    :type intro_completed_at: datetime | None
    """

    title: str
    vision: str = ""
    email: str | None = None
    reminder_at: datetime | None = None
    intro_completed_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class IntroUpdateIn:
    """
    Partial update; fields left as ``UNSET`` are not touched.

    ``reminder_at=None`` clears the reminder.
    """

    title: Any = UNSET
    vision: Any = UNSET
    reminder_at: Any = UNSET


# --------------------------------------------------------------------------- #
# Output
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class IntroSessionOut:
    """
    Client-safe view of an intro session.

    :param token: Bearer token addressing the session.
    :param return_url: Link that resumes the session in the client.
    """

    id: str
    token: str
    email: str | None
    title: str
    vision: str
    reminder_at: datetime | None
    reminder_sent: bool
    intro_completed_at: datetime | None
    created_at: datetime
    last_active_at: datetime | None
    expires_at: datetime
    upgrade_prompt_shown: bool
    return_url: str


@dataclass(frozen=True, slots=True)
class IntroCaptureOut:
    """Capture result: the session plus whether it was newly created."""

    session: IntroSessionOut
    created: bool


@dataclass(frozen=True, slots=True)
class ReminderSweepOut:
    """Counters reported by :meth:`IntroSessionService.dispatch_due_reminders`."""

    due: int = 0
    sent: int = 0
    failed: int = 0
