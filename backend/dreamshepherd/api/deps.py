"""Shared API helpers: service wiring, bearer auth, refresh cookie and timing."""

from __future__ import annotations

import functools
import logging
import time
from collections.abc import Callable
from datetime import timedelta
from typing import Any, TypeVar, cast

from flask import Response, current_app, g, jsonify, request

from dreamshepherd.core.extensions import (
    get_credential_store,
    get_intro_store,
    get_token_provider,
)
from dreamshepherd.services._shared.errors import AuthError, AuthFailure
from dreamshepherd.services.accounts.dto import (
    AccountOut,
    LoginPolicy,
    PasswordResetTicketOut,
    VerificationTicketOut,
)
from dreamshepherd.services.accounts.service import AccountService
from dreamshepherd.services.auth.dto import AuthTokenConfig
from dreamshepherd.services.auth.service import TokenService
from dreamshepherd.services.intro.dto import IntroPolicy
from dreamshepherd.services.intro.service import IntroSessionService
from dreamshepherd.services.upgrade.service import UpgradeService

F = TypeVar("F", bound=Callable[..., Any])

log = logging.getLogger(__name__)

TICKET_SENDER_KEY = "ticket_sender"
INTRO_TOKEN_HEADER = "X-Intro-Token"

Ticket = PasswordResetTicketOut | VerificationTicketOut


# ----------------------------- Service wiring -----------------------------


def intro_policy() -> IntroPolicy:
    cfg = current_app.config
    return IntroPolicy(
        ttl_days=int(cfg.get("INTRO_SESSION_TTL_DAYS", 30)),
        default_reminder_days=int(cfg.get("INTRO_DEFAULT_REMINDER_DAYS", 2)),
        client_base_url=str(cfg.get("CLIENT_BASE_URL", "http://localhost:5173")),
    )


def login_policy() -> LoginPolicy:
    cfg = current_app.config
    return LoginPolicy(
        max_attempts=int(cfg.get("LOGIN_MAX_ATTEMPTS", 5)),
        lockout=timedelta(minutes=int(cfg.get("LOGIN_LOCKOUT_MINUTES", 120))),
        reset_ttl=timedelta(minutes=int(cfg.get("PASSWORD_RESET_MINUTES", 10))),
        verification_ttl=timedelta(hours=int(cfg.get("EMAIL_VERIFICATION_HOURS", 24))),
    )


def token_config() -> AuthTokenConfig:
    cfg = current_app.config
    return AuthTokenConfig(
        access_expires=cfg["JWT_ACCESS_TOKEN_EXPIRES"],
        refresh_expires=cfg["JWT_REFRESH_TOKEN_EXPIRES"],
    )


def intro_service() -> IntroSessionService:
    return IntroSessionService(store=get_intro_store(), policy=intro_policy())


def account_service() -> AccountService:
    return AccountService(credentials=get_credential_store(), policy=login_policy())


def token_service() -> TokenService:
    return TokenService(token_provider=get_token_provider(), token_cfg=token_config())


def upgrade_service() -> UpgradeService:
    return UpgradeService(
        store=get_intro_store(),
        credentials=get_credential_store(),
        tokens=token_service(),
        intro_policy=intro_policy(),
        delete_attempts=int(current_app.config.get("UPGRADE_SESSION_DELETE_ATTEMPTS", 3)),
    )


# ----------------------------- Authentication -----------------------------


def bearer_token() -> str | None:
    """Return the token of an ``Authorization: Bearer <token>`` header, if any."""
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def intro_token() -> str | None:
    """Intro session token from the ``X-Intro-Token`` header or ``?token=``."""
    return request.headers.get(INTRO_TOKEN_HEADER) or request.args.get("token") or None


def require_auth(func: F) -> F:
    """Ensure the request carries a valid, non-revoked access token.

    The resolved account is available through :func:`current_account`.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        token = bearer_token()
        if token is None:
            raise AuthError(AuthFailure.MALFORMED)
        account = token_service().authenticate(token)
        g.current_account = account
        account_service().touch_last_active(account.id)
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def current_account() -> AccountOut:
    """Account resolved by :func:`require_auth` for this request."""
    return cast(AccountOut, g.current_account)


# ----------------------------- Refresh cookie -----------------------------


def set_refresh_cookie(response: Response, refresh_token: str) -> Response:
    """Attach the refresh token as an HTTP-only, ``SameSite=Strict`` cookie."""
    cfg = current_app.config
    response.set_cookie(
        cfg.get("REFRESH_COOKIE_NAME", "refreshToken"),
        refresh_token,
        max_age=int(token_config().refresh_expires.total_seconds()),
        path=cfg.get("REFRESH_COOKIE_PATH", "/"),
        secure=bool(cfg.get("REFRESH_COOKIE_SECURE", False)),
        httponly=True,
        samesite="Strict",
    )
    return response


def clear_refresh_cookie(response: Response) -> Response:
    cfg = current_app.config
    response.delete_cookie(
        cfg.get("REFRESH_COOKIE_NAME", "refreshToken"),
        path=cfg.get("REFRESH_COOKIE_PATH", "/"),
        secure=bool(cfg.get("REFRESH_COOKIE_SECURE", False)),
        httponly=True,
        samesite="Strict",
    )
    return response


def read_refresh_token(body_token: str | None = None) -> str | None:
    """Refresh token from the cookie, falling back to the request body."""
    name = current_app.config.get("REFRESH_COOKIE_NAME", "refreshToken")
    return request.cookies.get(name) or body_token or None


# ----------------------------- Ticket delivery -----------------------------


def deliver_ticket(kind: str, ticket: Ticket) -> None:
    """Hand a reset/verification ticket to the registered sender.

    Without a sender (no mail transport configured) only the event is logged;
    the plain token never reaches the logs.
    """
    sender = current_app.extensions.get(TICKET_SENDER_KEY)
    if sender is not None:
        sender(kind, ticket)
        return
    log.info(
        "ticket.undelivered",
        extra={"event": f"{kind}.undelivered", "dreamer_id": ticket.dreamer_id},
    )


# ----------------------------- Responses -----------------------------


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            request_endpoint = getattr(request, "endpoint", None)
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request_endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]
