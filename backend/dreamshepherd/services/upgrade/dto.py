"""DTOs for UpgradeService."""

from __future__ import annotations

from dataclasses import dataclass

from dreamshepherd.services.accounts.dto import AccountOut, DreamOut
from dreamshepherd.services.auth.dto import TokenPairOut
from dreamshepherd.services.intro.dto import IntroSessionOut


@dataclass(frozen=True, slots=True)
class UpgradeIn:
    """
    Registration data that turns an intro session into an account.

    :param token: Intro session bearer token.
    :type token: str
    :param password: Raw password (at least 8 characters).
    :type password: str
    :param email: Used only when the session itself carries no email.
    :type email: str | None
    """

    token: str
    password: str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    display_name: str | None = None
    theme: str | None = None
    animation_speed: str | None = None
    shepherd_personality: str | None = None
    notifications: bool | None = None


@dataclass(frozen=True, slots=True)
class UpgradeOut:
    """
    :param account: The new account (reloaded after commit).
    :param dream: The first dream, carrying the session's original creation time.
    :param tokens: Fresh access/refresh pair.
    """

    account: AccountOut
    dream: DreamOut
    tokens: TokenPairOut


@dataclass(frozen=True, slots=True)
class UpgradePreviewOut:
    """Whether an upgrade is currently possible, computed without side effects."""

    session: IntroSessionOut
    email_already_registered: bool
    can_upgrade: bool


@dataclass(frozen=True, slots=True)
class ConversionStatsOut:
    """
    Intro → account funnel over a trailing window.

    :param intro_sessions_created: Live intro sessions plus upgrades started in the window.
    :param upgrades_completed: Accounts upgraded in the window.
    :param conversion_rate: Percentage, rounded to two decimals.
    :param pending_upgrades: Live sessions in the window never shown the upgrade prompt.
    """

    period_days: int
    intro_sessions_created: int
    upgrades_completed: int
    conversion_rate: float
    pending_upgrades: int
