# dreamshepherd/infra/jwt/flask_jwt_token_provider.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, cast

import jwt as pyjwt
from flask_jwt_extended.exceptions import JWTExtendedException

from dreamshepherd.services._shared.ports import (
    TokenDecodeError,
    TokenExpiredError,
    TokenProvider,
)


@dataclass(slots=True)
class JWTTokenProvider(TokenProvider):
    """
    Adapter for Flask-JWT-Extended.

    Issuer, audience, algorithm and signing key come from the app config
    (``JWT_ENCODE_*`` / ``JWT_DECODE_*``); the library adds ``type``,
    ``jti``, ``iat``, ``nbf`` and ``exp``.

    .. note::
       Requires an active Flask app context with proper JWT settings.
    """

    def create_access_token(
        self,
        *,
        identity: str,
        additional_claims: dict[str, Any] | None = None,
        expires_delta: timedelta | None = None,
    ) -> str:
        from flask_jwt_extended import create_access_token as _create_access

        return cast(
            str,
            _create_access(
                identity=identity,
                additional_claims=additional_claims or {},
                expires_delta=expires_delta,
            ),
        )

    def create_refresh_token(
        self,
        *,
        identity: str,
        additional_claims: dict[str, Any] | None = None,
        expires_delta: timedelta | None = None,
    ) -> str:
        from flask_jwt_extended import create_refresh_token as _create_refresh

        return cast(
            str,
            _create_refresh(
                identity=identity,
                additional_claims=additional_claims or {},
                expires_delta=expires_delta,
            ),
        )

    def decode(self, token: str) -> dict[str, Any]:
        """
        Decode and validate ``token`` (signature, ``exp``, ``iss``, ``aud``).

        :raises TokenExpiredError: Valid token past its expiry.
        :raises TokenDecodeError: Anything else that cannot be trusted.
        """
        from flask_jwt_extended import decode_token

        try:
            return cast(dict[str, Any], decode_token(token))
        except pyjwt.ExpiredSignatureError as exc:
            raise TokenExpiredError(str(exc)) from exc
        except (pyjwt.InvalidTokenError, JWTExtendedException) as exc:
            raise TokenDecodeError(str(exc)) from exc
