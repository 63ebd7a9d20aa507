# dreamshepherd/services/auth/dto.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from dreamshepherd.services.accounts.dto import AccountOut


class TokenKind(str, Enum):
    """Value of the ``type`` claim."""

    ACCESS = "access"
    REFRESH = "refresh"


# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class TokenSubject:
    """
    Who a token is issued for.

    :param dreamer_id: Account id (``sub`` claim, rendered as a string).
    :type dreamer_id: int
    :param email: Account email (access tokens only).
    :type email: str
    :param token_version: Revocation counter snapshot (``rv`` claim).
    :type token_version: int
    """

    dreamer_id: int
    email: str
    token_version: int

    @classmethod
    def from_account(cls, account: AccountOut) -> TokenSubject:
        return cls(
            dreamer_id=account.id,
            email=account.email,
            token_version=account.token_version,
        )


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class TokenPayload:
    """
    Verified claims of a token.

    :param kind: Access or refresh.
    :param dreamer_id: Subject account id.
    :param token_version: Revocation counter the token was issued under.
    :param email: Present on access tokens.
    :param expires_at: ``exp`` as an aware datetime.
    """

    kind: TokenKind
    dreamer_id: int
    token_version: int
    email: str | None
    expires_at: datetime
    jti: str | None = None


@dataclass(frozen=True, slots=True)
class TokenPairOut:
    """
    Output DTO with access and refresh tokens.

    :param access_token: Encoded access JWT.
    :type access_token: str
    :param refresh_token: Encoded refresh JWT (cookie transport only).
    :type refresh_token: str
    :param expires_in: Access token lifetime in seconds.
    :type expires_in: int
    """

    access_token: str
    refresh_token: str
    expires_in: int


@dataclass(frozen=True, slots=True)
class RefreshOut:
    """A rotated pair together with the (reloaded) account it belongs to."""

    account: AccountOut
    tokens: TokenPairOut


# ------------------------ Config DTO --------------------------- #


@dataclass(frozen=True, slots=True)
class AuthTokenConfig:
    """
    Token emission configuration.

    :param access_expires: Access token lifetime.
    :type access_expires: timedelta
    :param refresh_expires: Refresh token lifetime.
    :type refresh_expires: timedelta
    """

    access_expires: timedelta = timedelta(minutes=15)
    refresh_expires: timedelta = timedelta(days=7)
