"""Intro session Marshmallow schemas."""

from __future__ import annotations

from datetime import UTC
from typing import Any

from marshmallow import Schema, fields, post_load

from dreamshepherd.services.intro.dto import IntroCaptureIn, IntroUpdateIn


class IntroCaptureSchema(Schema):
    """Input payload for capturing an intro session.

    Length and format rules are enforced by the service so that every
    violation is reported at once.
    """

    title = fields.String(required=True)
    vision = fields.String(load_default="")
    email = fields.String(load_default=None, allow_none=True)
    reminder_at = fields.AwareDateTime(load_default=None, allow_none=True, default_timezone=UTC)
    intro_completed_at = fields.AwareDateTime(
        load_default=None, allow_none=True, default_timezone=UTC
    )

    @post_load
    def to_dto(self, data: dict[str, Any], **_: Any) -> IntroCaptureIn:
        return IntroCaptureIn(**data)


class IntroUpdateSchema(Schema):
    """Partial update; absent keys stay untouched, ``reminder_at: null`` clears."""

    title = fields.String()
    vision = fields.String()
    reminder_at = fields.AwareDateTime(allow_none=True, default_timezone=UTC)

    @post_load
    def to_dto(self, data: dict[str, Any], **_: Any) -> IntroUpdateIn:
        return IntroUpdateIn(**data)


class IntroSessionSchema(Schema):
    """Response payload for an intro session."""

    id = fields.String(required=True)
    token = fields.String(required=True)
    email = fields.String(allow_none=True)
    title = fields.String(required=True)
    vision = fields.String()
    reminder_at = fields.AwareDateTime(allow_none=True)
    reminder_sent = fields.Boolean()
    intro_completed_at = fields.AwareDateTime(allow_none=True)
    created_at = fields.AwareDateTime()
    last_active_at = fields.AwareDateTime(allow_none=True)
    expires_at = fields.AwareDateTime()
    upgrade_prompt_shown = fields.Boolean()
    return_url = fields.String()


class UpgradePreviewSchema(Schema):
    """Response payload for the upgrade preview."""

    session = fields.Nested(IntroSessionSchema)
    email_already_registered = fields.Boolean()
    can_upgrade = fields.Boolean()
