"""
Tagged identity of a caller: anonymous visitor, intro session holder or dreamer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from dreamshepherd.services._shared.errors import AuthError, AuthFailure, NotFoundError
from dreamshepherd.services.accounts.dto import AccountOut
from dreamshepherd.services.auth.service import TokenService
from dreamshepherd.services.intro.dto import IntroSessionOut
from dreamshepherd.services.intro.service import IntroSessionService


@dataclass(frozen=True, slots=True)
class AnonymousIdentity:
    kind: Literal["anonymous"] = "anonymous"


@dataclass(frozen=True, slots=True)
class IntroIdentity:
    session: IntroSessionOut
    kind: Literal["intro"] = "intro"


@dataclass(frozen=True, slots=True)
class DreamerIdentity:
    account: AccountOut
    kind: Literal["dreamer"] = "dreamer"


Identity = AnonymousIdentity | IntroIdentity | DreamerIdentity


def resolve_identity(
    *,
    tokens: TokenService,
    intro: IntroSessionService,
    bearer: str | None,
    intro_token: str | None,
) -> Identity:
    """
    Resolve who is calling. An access token wins over an intro token.

    Invalid or revoked credentials degrade to the next candidate; an expired
    access token is re-raised so the client knows to refresh.

    :raises AuthError: ``EXPIRED`` for an expired access token.
    """
    if bearer:
        try:
            return DreamerIdentity(account=tokens.authenticate(bearer))
        except AuthError as exc:
            if exc.reason is AuthFailure.EXPIRED:
                raise
    if intro_token:
        try:
            return IntroIdentity(session=intro.get(intro_token))
        except NotFoundError:
            pass
    return AnonymousIdentity()
