# dreamshepherd/services/auth/service.py
from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from dreamshepherd.services._shared.base import BaseService
from dreamshepherd.services._shared.errors import AuthError, AuthFailure
from dreamshepherd.services._shared.ports.token_provider import (
    TokenDecodeError,
    TokenExpiredError,
    TokenProvider,
)
from dreamshepherd.services.accounts._converters import dreamer_to_out
from dreamshepherd.services.accounts.dto import AccountOut
from dreamshepherd.services.auth.dto import (
    AuthTokenConfig,
    RefreshOut,
    TokenKind,
    TokenPairOut,
    TokenPayload,
    TokenSubject,
)

log = logging.getLogger(__name__)


class TokenService(BaseService):
    """
    Access/refresh JWT lifecycle.

    Tokens are stateless: verification needs only the signing key. Early
    revocation works through the account's revocation counter (``rv``
    claim), which is compared against the stored value whenever an account
    is resolved from a token.

    States: issued → valid → expired | revoked | wrong-kind-rejected.
    """

    def __init__(
        self,
        *,
        token_provider: TokenProvider,
        token_cfg: AuthTokenConfig | None = None,
    ) -> None:
        """
        Initialize the service with its dependencies.

        :param token_provider: Adapter for issuing/decoding JWTs.
        :param token_cfg: Access/Refresh expiry configuration.
        """
        super().__init__()
        self.tokens = token_provider
        self.cfg = token_cfg or AuthTokenConfig()

    # ------------------------------------------------------------------ #
    # Issuance
    # ------------------------------------------------------------------ #

    def issue_access_token(self, subject: TokenSubject) -> str:
        """Access token: ``sub``, ``email``, ``rv``; 15 minutes by default."""
        return self.tokens.create_access_token(
            identity=str(subject.dreamer_id),
            additional_claims={"email": subject.email, "rv": subject.token_version},
            expires_delta=self.cfg.access_expires,
        )

    def issue_refresh_token(self, subject: TokenSubject) -> str:
        """Refresh token: ``sub``, ``rv``; 7 days by default."""
        return self.tokens.create_refresh_token(
            identity=str(subject.dreamer_id),
            additional_claims={"rv": subject.token_version},
            expires_delta=self.cfg.refresh_expires,
        )

    def issue_pair(self, subject: TokenSubject) -> TokenPairOut:
        return TokenPairOut(
            access_token=self.issue_access_token(subject),
            refresh_token=self.issue_refresh_token(subject),
            expires_in=int(self.cfg.access_expires.total_seconds()),
        )

    # ------------------------------------------------------------------ #
    # Verification
    # ------------------------------------------------------------------ #

    def verify(self, token: str, expected_kind: TokenKind) -> TokenPayload:
        """
        Stateless verification: signature, expiry, issuer, audience and kind.

        :param token: Encoded JWT.
        :param expected_kind: Kind the caller accepts.
        :returns: Verified payload.
        :raises AuthError: ``EXPIRED``, ``MALFORMED`` or ``WRONG_KIND``.
        """
        if not token:
            raise AuthError(AuthFailure.MALFORMED)
        try:
            claims = self.tokens.decode(token)
        except TokenExpiredError:
            raise AuthError(AuthFailure.EXPIRED) from None
        except TokenDecodeError:
            raise AuthError(AuthFailure.MALFORMED) from None

        if claims.get("type") != expected_kind.value:
            raise AuthError(AuthFailure.WRONG_KIND)
        return self._to_payload(claims, expected_kind)

    @staticmethod
    def _to_payload(claims: dict[str, Any], kind: TokenKind) -> TokenPayload:
        try:
            dreamer_id = int(claims["sub"])
            rv = claims["rv"]
            exp = int(claims["exp"])
        except (KeyError, TypeError, ValueError):
            raise AuthError(AuthFailure.MALFORMED) from None
        # bool is an int subclass
        if not isinstance(rv, int) or isinstance(rv, bool):
            raise AuthError(AuthFailure.MALFORMED)
        return TokenPayload(
            kind=kind,
            dreamer_id=dreamer_id,
            token_version=rv,
            email=claims.get("email"),
            expires_at=datetime.fromtimestamp(exp, tz=UTC),
            jti=claims.get("jti"),
        )

    # ------------------------------------------------------------------ #
    # Account-bound operations
    # ------------------------------------------------------------------ #

    def authenticate(self, access_token: str) -> AccountOut:
        """
        Resolve the account behind an access token.

        :raises AuthError: As :meth:`verify`, or ``REVOKED`` when the counter moved.
        """
        payload = self.verify(access_token, TokenKind.ACCESS)
        return self._load_current(payload)

    def refresh(self, refresh_token: str) -> RefreshOut:
        """
        Rotate: verify a refresh token and issue a brand-new pair.

        The presented token stays valid until it expires or the counter moves.

        :raises AuthError: As :meth:`verify`, or ``REVOKED``.
        """
        payload = self.verify(refresh_token, TokenKind.REFRESH)
        account = self._load_current(payload)
        return RefreshOut(
            account=account,
            tokens=self.issue_pair(TokenSubject.from_account(account)),
        )

    def logout(self, refresh_token: str | None) -> bool:
        """
        Revoke every session of the token's account.

        Invalid, expired or already-revoked tokens are ignored.

        :returns: ``True`` when the revocation counter was bumped.
        """
        if not refresh_token:
            return False
        try:
            payload = self.verify(refresh_token, TokenKind.REFRESH)
        except AuthError:
            return False

        with self.storage_errors(), self.rw_uow() as uow:
            dreamer = uow.dreamers.get(payload.dreamer_id)
            if dreamer is None or dreamer.token_version != payload.token_version:
                return False
            uow.dreamers.bump_token_version(payload.dreamer_id)
        log.info(
            "auth.logout",
            extra={"event": "auth.logout", "dreamer_id": payload.dreamer_id},
        )
        return True

    def _load_current(self, payload: TokenPayload) -> AccountOut:
        with self.storage_errors(), self.ro_uow() as uow:
            dreamer = uow.dreamers.get(payload.dreamer_id)
            if dreamer is None or dreamer.token_version != payload.token_version:
                log.info(
                    "auth.token_revoked",
                    extra={
                        "event": "auth.token_revoked",
                        "dreamer_id": payload.dreamer_id,
                        "reason": "missing" if dreamer is None else "counter",
                    },
                )
                raise AuthError(AuthFailure.REVOKED)
            return dreamer_to_out(dreamer)
