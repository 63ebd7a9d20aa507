from __future__ import annotations

from datetime import timedelta
from typing import Any, Protocol


class TokenDecodeError(Exception):
    """Raised by providers for any token that cannot be trusted (signature, format, iss/aud)."""


class TokenExpiredError(TokenDecodeError):
    """Raised by providers for a well-formed, correctly signed token past its ``exp``."""


class TokenProvider(Protocol):
    """Port for issuing and decoding signed JWTs.

    Tokens carry a ``type`` claim (``"access"`` or ``"refresh"``); decoding
    checks signature, expiry, issuer and audience and raises
    :class:`TokenExpiredError` / :class:`TokenDecodeError` instead of
    library-specific exceptions.
    """

    def create_access_token(
        self,
        *,
        identity: str,
        additional_claims: dict[str, Any] | None = None,
        expires_delta: timedelta | None = None,
    ) -> str: ...

    def create_refresh_token(
        self,
        *,
        identity: str,
        additional_claims: dict[str, Any] | None = None,
        expires_delta: timedelta | None = None,
    ) -> str: ...

    def decode(self, token: str) -> dict[str, Any]: ...
