"""Authentication endpoints using the service layer."""

from __future__ import annotations

from typing import Any

from flask import Blueprint, request

from dreamshepherd.api.deps import (
    account_service,
    bearer_token,
    clear_refresh_cookie,
    current_account,
    deliver_ticket,
    intro_service,
    intro_token,
    json_response,
    read_refresh_token,
    require_auth,
    set_refresh_cookie,
    timing,
    token_service,
    upgrade_service,
)
from dreamshepherd.schemas import (
    AccountSchema,
    DreamSchema,
    EmailVerifySchema,
    IntroSessionSchema,
    LoginSchema,
    PasswordChangeSchema,
    PasswordForgotSchema,
    PasswordResetSchema,
    ProfileUpdateSchema,
    RefreshSchema,
    RegisterSchema,
    TokenResponseSchema,
)
from dreamshepherd.services._shared.errors import AuthError, AuthFailure
from dreamshepherd.services.accounts.dto import AccountOut, DreamOut, RegisterIn
from dreamshepherd.services.auth.dto import TokenPairOut, TokenSubject
from dreamshepherd.services.auth.identity import (
    DreamerIdentity,
    IntroIdentity,
    resolve_identity,
)
from dreamshepherd.services.upgrade.dto import UpgradeIn

bp = Blueprint("auth", __name__, url_prefix="/auth")

register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_schema = RefreshSchema()
password_change_schema = PasswordChangeSchema()
password_forgot_schema = PasswordForgotSchema()
password_reset_schema = PasswordResetSchema()
email_verify_schema = EmailVerifySchema()
profile_update_schema = ProfileUpdateSchema()
account_schema = AccountSchema()
dream_schema = DreamSchema()
dream_list_schema = DreamSchema(many=True)
session_schema = IntroSessionSchema()
token_schema = TokenResponseSchema()


def _auth_response(
    account: AccountOut,
    tokens: TokenPairOut,
    *,
    status: int = 200,
    dream: DreamOut | None = None,
):
    data: dict[str, Any] = {"dreamer": account_schema.dump(account), **token_schema.dump(tokens)}
    if dream is not None:
        data["dream"] = dream_schema.dump(dream)
    response = json_response({"data": data}, status=status)
    return set_refresh_cookie(response, tokens.refresh_token)


@bp.post("/register")
@timing
def register():
    """Register a dreamer: upgrade an intro session (``temp_token``) or sign up directly."""

    data = register_schema.load(request.get_json(silent=True) or {})
    temp_token = data.pop("temp_token")
    if temp_token:
        result = upgrade_service().upgrade(UpgradeIn(token=temp_token, **data))
        return _auth_response(result.account, result.tokens, status=201, dream=result.dream)

    account = account_service().register(
        RegisterIn(
            email=data["email"] or "",
            password=data["password"],
            first_name=data["first_name"],
            last_name=data["last_name"],
            display_name=data["display_name"],
        )
    )
    tokens = token_service().issue_pair(TokenSubject.from_account(account))
    return _auth_response(account, tokens, status=201)


@bp.post("/login")
@timing
def login():
    """Authenticate credentials and issue a token pair."""

    dto = login_schema.load(request.get_json(silent=True) or {})
    account = account_service().verify_login(dto)
    tokens = token_service().issue_pair(TokenSubject.from_account(account))
    return _auth_response(account, tokens)


@bp.post("/refresh")
@timing
def refresh():
    """Rotate the token pair from the refresh cookie (body fallback)."""

    data = refresh_schema.load(request.get_json(silent=True) or {})
    token = read_refresh_token(data["refresh_token"])
    if not token:
        raise AuthError(AuthFailure.MALFORMED)
    result = token_service().refresh(token)
    return _auth_response(result.account, result.tokens)


@bp.post("/logout")
@timing
def logout():
    """Revoke every session of a valid refresh token and clear the cookie."""

    data = refresh_schema.load(request.get_json(silent=True) or {})
    token_service().logout(read_refresh_token(data["refresh_token"]))
    response = json_response({"data": {"logged_out": True}})
    return clear_refresh_cookie(response)


@bp.get("/me")
@require_auth
@timing
def me():
    """Return the authenticated dreamer and their dreams."""

    account = current_account()
    dreams = account_service().list_dreams(account.id)
    body = {
        "data": {
            "dreamer": account_schema.dump(account),
            "dreams": dream_list_schema.dump(dreams),
        }
    }
    return json_response(body)


@bp.patch("/me")
@require_auth
@timing
def update_me():
    """Edit profile and preferences of the authenticated dreamer."""

    dto = profile_update_schema.load(request.get_json(silent=True) or {})
    account = account_service().update_profile(current_account().id, dto)
    return json_response({"data": {"dreamer": account_schema.dump(account)}})


@bp.get("/whoami")
@timing
def whoami():
    """Return the caller's tagged identity: anonymous, intro or dreamer."""

    identity = resolve_identity(
        tokens=token_service(),
        intro=intro_service(),
        bearer=bearer_token(),
        intro_token=intro_token(),
    )
    data: dict[str, Any] = {"kind": identity.kind}
    if isinstance(identity, DreamerIdentity):
        data["dreamer"] = account_schema.dump(identity.account)
    elif isinstance(identity, IntroIdentity):
        data["session"] = session_schema.dump(identity.session)
    return json_response({"data": data})


@bp.post("/password/change")
@require_auth
@timing
def change_password():
    """Change the password; every other session is logged out."""

    dto = password_change_schema.load(request.get_json(silent=True) or {})
    account = account_service().change_password(current_account().id, dto)
    tokens = token_service().issue_pair(TokenSubject.from_account(account))
    return _auth_response(account, tokens)


@bp.post("/password/forgot")
@timing
def forgot_password():
    """Issue a reset token; the answer never reveals whether the email exists."""

    data = password_forgot_schema.load(request.get_json(silent=True) or {})
    ticket = account_service().request_password_reset(data["email"])
    if ticket is not None:
        deliver_ticket("password_reset", ticket)
    return json_response({"data": {"status": "accepted"}}, status=202)


@bp.post("/password/reset")
@timing
def reset_password():
    """Set a new password from a reset token; every session is logged out."""

    dto = password_reset_schema.load(request.get_json(silent=True) or {})
    account = account_service().reset_password(dto)
    response = json_response({"data": {"dreamer": account_schema.dump(account)}})
    return clear_refresh_cookie(response)


@bp.post("/email/verification")
@require_auth
@timing
def request_email_verification():
    """Issue an email verification token for the authenticated dreamer."""

    ticket = account_service().request_email_verification(current_account().id)
    deliver_ticket("email_verification", ticket)
    return json_response({"data": {"status": "accepted"}}, status=202)


@bp.post("/email/verify")
@timing
def verify_email():
    """Confirm an email address from its verification token."""

    data = email_verify_schema.load(request.get_json(silent=True) or {})
    account = account_service().verify_email(data["token"])
    return json_response({"data": {"dreamer": account_schema.dump(account)}})
