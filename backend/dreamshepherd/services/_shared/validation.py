"""
Accumulating input validation shared by the intro, account and upgrade flows.

Rules are checked exhaustively: callers collect every :class:`Violation` and
raise a single :class:`ValidationError` at the end.
"""

from __future__ import annotations

import re
from datetime import datetime

from dreamshepherd.models.dreamer import ANIMATION_SPEEDS, SHEPHERD_PERSONALITIES, THEMES
from dreamshepherd.services._shared.errors import ValidationError, Violation

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s.]{2,}$")

MIN_PASSWORD_LENGTH = 8
MAX_TITLE_LENGTH = 200
MAX_VISION_LENGTH = 10000
MAX_NAME_LENGTH = 50
MAX_DISPLAY_NAME_LENGTH = 100


class ViolationCollector:
    """Gather violations and raise them together."""

    def __init__(self) -> None:
        self.violations: list[Violation] = []

    def add(self, field: str, message: str) -> None:
        self.violations.append(Violation(field=field, message=message))

    def check(self, ok: bool, field: str, message: str) -> None:
        if not ok:
            self.add(field, message)

    def raise_if_any(self) -> None:
        """:raises ValidationError: When at least one violation was collected."""
        if self.violations:
            raise ValidationError(list(self.violations))


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_PATTERN.match(value.strip()))


def check_email(collector: ViolationCollector, email: str | None, *, required: bool) -> None:
    if email is None or not email.strip():
        if required:
            collector.add("email", "Email is required")
        return
    collector.check(is_valid_email(email), "email", "Please enter a valid email")


def check_password(collector: ViolationCollector, password: str | None) -> None:
    if not password:
        collector.add("password", "Password is required")
        return
    collector.check(
        len(password) >= MIN_PASSWORD_LENGTH,
        "password",
        f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
    )


def check_dream(
    collector: ViolationCollector,
    *,
    title: str | None,
    vision: str | None,
    reminder_at: datetime | None,
    now: datetime,
    title_required: bool = True,
) -> None:
    """Title present and capped, vision capped, reminder in the future."""
    if title is None or not title.strip():
        if title_required or title is not None:
            collector.add("title", "Dream title is required")
    else:
        collector.check(
            len(title.strip()) <= MAX_TITLE_LENGTH,
            "title",
            f"Dream title cannot exceed {MAX_TITLE_LENGTH} characters",
        )
    if vision is not None:
        collector.check(
            len(vision) <= MAX_VISION_LENGTH,
            "vision",
            f"Dream vision cannot exceed {MAX_VISION_LENGTH} characters",
        )
    if reminder_at is not None:
        collector.check(reminder_at > now, "reminder_at", "Reminder time must be in the future")


def check_profile(
    collector: ViolationCollector,
    *,
    first_name: str | None = None,
    last_name: str | None = None,
    display_name: str | None = None,
    theme: str | None = None,
    animation_speed: str | None = None,
    shepherd_personality: str | None = None,
) -> None:
    """Name length caps and preference vocabularies."""
    if first_name is not None:
        collector.check(
            len(first_name) <= MAX_NAME_LENGTH,
            "first_name",
            f"First name cannot exceed {MAX_NAME_LENGTH} characters",
        )
    if last_name is not None:
        collector.check(
            len(last_name) <= MAX_NAME_LENGTH,
            "last_name",
            f"Last name cannot exceed {MAX_NAME_LENGTH} characters",
        )
    if display_name is not None:
        collector.check(
            len(display_name) <= MAX_DISPLAY_NAME_LENGTH,
            "display_name",
            f"Display name cannot exceed {MAX_DISPLAY_NAME_LENGTH} characters",
        )
    if theme is not None:
        collector.check(theme in THEMES, "theme", f"Theme must be one of {', '.join(THEMES)}")
    if animation_speed is not None:
        collector.check(
            animation_speed in ANIMATION_SPEEDS,
            "animation_speed",
            f"Animation speed must be one of {', '.join(ANIMATION_SPEEDS)}",
        )
    if shepherd_personality is not None:
        collector.check(
            shepherd_personality in SHEPHERD_PERSONALITIES,
            "shepherd_personality",
            f"Shepherd personality must be one of {', '.join(SHEPHERD_PERSONALITIES)}",
        )
