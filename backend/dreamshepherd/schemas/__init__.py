"""Convenience exports for application schemas."""

from __future__ import annotations

from .account import AccountSchema, DreamSchema, ProfileUpdateSchema
from .auth import (
    EmailVerifySchema,
    LoginSchema,
    PasswordChangeSchema,
    PasswordForgotSchema,
    PasswordResetSchema,
    RefreshSchema,
    RegisterSchema,
    TokenResponseSchema,
)
from .intro import (
    IntroCaptureSchema,
    IntroSessionSchema,
    IntroUpdateSchema,
    UpgradePreviewSchema,
)

__all__ = [
    "AccountSchema",
    "DreamSchema",
    "ProfileUpdateSchema",
    "EmailVerifySchema",
    "LoginSchema",
    "PasswordChangeSchema",
    "PasswordForgotSchema",
    "PasswordResetSchema",
    "RefreshSchema",
    "RegisterSchema",
    "TokenResponseSchema",
    "IntroCaptureSchema",
    "IntroSessionSchema",
    "IntroUpdateSchema",
    "UpgradePreviewSchema",
]
