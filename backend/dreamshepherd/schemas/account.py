"""Account (Dreamer) Marshmallow schemas."""

from __future__ import annotations

from typing import Any

from marshmallow import Schema, fields, post_load

from dreamshepherd.services.accounts.dto import ProfileUpdateIn


class PreferencesSchema(Schema):
    theme = fields.String()
    animation_speed = fields.String()
    shepherd_personality = fields.String()
    notifications = fields.Boolean()


class ProvenanceSchema(Schema):
    """Upgrade provenance: timestamps only."""

    original_created_at = fields.AwareDateTime(allow_none=True)
    upgraded_at = fields.AwareDateTime(allow_none=True)


class AccountSchema(Schema):
    """Safe account view: no credential, no token digests, no revocation counter."""

    id = fields.Integer(required=True)
    email = fields.String(required=True)
    is_email_verified = fields.Boolean()
    first_name = fields.String(allow_none=True)
    last_name = fields.String(allow_none=True)
    display_name = fields.String(allow_none=True)
    avatar_url = fields.String(allow_none=True)
    onboarding_completed = fields.Boolean()
    intro_completed_at = fields.AwareDateTime(allow_none=True)
    journey_started_at = fields.AwareDateTime(allow_none=True)
    preferences = fields.Nested(PreferencesSchema)
    upgraded_from = fields.Nested(ProvenanceSchema, attribute="provenance", allow_none=True)
    dream_count = fields.Integer()
    goal_count = fields.Integer()
    active_habits = fields.Integer()
    last_login_at = fields.AwareDateTime(allow_none=True)
    last_active_at = fields.AwareDateTime(allow_none=True)
    created_at = fields.AwareDateTime()
    updated_at = fields.AwareDateTime()


class DreamSchema(Schema):
    id = fields.String(required=True)
    slug = fields.String()
    title = fields.String()
    vision = fields.String()
    created_at = fields.AwareDateTime()
    updated_at = fields.AwareDateTime()


class PreferencesInSchema(Schema):
    """Nested ``preferences`` object accepted on input."""

    theme = fields.String(allow_none=True)
    animation_speed = fields.String(allow_none=True)
    shepherd_personality = fields.String(allow_none=True)
    notifications = fields.Boolean(allow_none=True)


PREFERENCE_KEYS = ("theme", "animation_speed", "shepherd_personality", "notifications")


def flatten_preferences(data: dict[str, Any]) -> dict[str, Any]:
    """Lift a nested ``preferences`` object onto the top level.

    Top-level keys win when both forms carry a value.
    """
    nested = data.pop("preferences", None) or {}
    for key in PREFERENCE_KEYS:
        if data.get(key) is None and nested.get(key) is not None:
            data[key] = nested[key]
    return data


class ProfileUpdateSchema(Schema):
    """Input payload for profile and preference edits.

    Preferences may be sent flat or nested under ``preferences``.
    """

    first_name = fields.String()
    last_name = fields.String()
    display_name = fields.String()
    avatar_url = fields.String()
    theme = fields.String()
    animation_speed = fields.String()
    shepherd_personality = fields.String()
    notifications = fields.Boolean()
    preferences = fields.Nested(PreferencesInSchema, allow_none=True)

    @post_load
    def to_dto(self, data: dict[str, Any], **_: Any) -> ProfileUpdateIn:
        return ProfileUpdateIn(**flatten_preferences(data))
