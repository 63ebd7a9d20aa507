"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from typing import Any

from marshmallow import Schema, fields, post_load, validate

from dreamshepherd.schemas.account import PreferencesInSchema, flatten_preferences
from dreamshepherd.services.accounts.dto import LoginIn, PasswordChangeIn, PasswordResetIn


class RegisterSchema(Schema):
    """Input payload for registration.

    With ``temp_token`` the intro session is upgraded (its own email wins);
    without it a plain account is created from ``email``.
    Preferences may be sent flat or nested under ``preferences``.
    """

    temp_token = fields.String(load_default=None, allow_none=True)
    email = fields.String(load_default=None, allow_none=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=validate.Length(max=128))
    first_name = fields.String(load_default=None, allow_none=True)
    last_name = fields.String(load_default=None, allow_none=True)
    display_name = fields.String(load_default=None, allow_none=True)
    theme = fields.String(load_default=None, allow_none=True)
    animation_speed = fields.String(load_default=None, allow_none=True)
    shepherd_personality = fields.String(load_default=None, allow_none=True)
    notifications = fields.Boolean(load_default=None, allow_none=True)
    preferences = fields.Nested(PreferencesInSchema, load_default=None, allow_none=True)

    @post_load
    def lift_preferences(self, data: dict[str, Any], **_: Any) -> dict[str, Any]:
        return flatten_preferences(data)


class LoginSchema(Schema):
    """Input payload for authenticating a dreamer."""

    email = fields.String(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=validate.Length(max=128))

    @post_load
    def to_dto(self, data: dict[str, Any], **_: Any) -> LoginIn:
        return LoginIn(**data)


class RefreshSchema(Schema):
    """Body fallback for clients that cannot send the refresh cookie."""

    refresh_token = fields.String(load_default=None, allow_none=True)


class PasswordChangeSchema(Schema):
    current_password = fields.String(required=True)
    new_password = fields.String(required=True, validate=validate.Length(max=128))

    @post_load
    def to_dto(self, data: dict[str, Any], **_: Any) -> PasswordChangeIn:
        return PasswordChangeIn(**data)


class PasswordForgotSchema(Schema):
    email = fields.String(required=True, validate=validate.Length(max=254))


class PasswordResetSchema(Schema):
    token = fields.String(required=True)
    new_password = fields.String(required=True, validate=validate.Length(max=128))

    @post_load
    def to_dto(self, data: dict[str, Any], **_: Any) -> PasswordResetIn:
        return PasswordResetIn(**data)


class EmailVerifySchema(Schema):
    token = fields.String(required=True)


class TokenResponseSchema(Schema):
    """Access token part of an auth response (the refresh token travels as a cookie)."""

    access_token = fields.String(required=True)
    token_type = fields.Constant("bearer")
    expires_in = fields.Integer()
