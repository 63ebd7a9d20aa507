from __future__ import annotations

from dreamshepherd.models.dream import Dream
from dreamshepherd.models.dreamer import Dreamer

from .dto import AccountOut, DreamOut, PreferencesOut, ProvenanceOut


def _provenance(row: Dreamer) -> ProvenanceOut | None:
    if row.upgraded_from_intro_id is None:
        return None
    return ProvenanceOut(
        intro_id=row.upgraded_from_intro_id,
        original_created_at=row.upgraded_original_created_at,
        upgraded_at=row.upgraded_at,
    )


def dreamer_to_out(row: Dreamer) -> AccountOut:
    """Map a :class:`Dreamer` row to its client-safe view."""
    return AccountOut(
        id=row.id,
        email=row.email,
        is_email_verified=row.is_email_verified,
        first_name=row.first_name,
        last_name=row.last_name,
        display_name=row.display_name,
        avatar_url=row.avatar_url,
        onboarding_completed=row.onboarding_completed,
        intro_completed_at=row.intro_completed_at,
        journey_started_at=row.journey_started_at,
        preferences=PreferencesOut(
            theme=row.theme,
            animation_speed=row.animation_speed,
            shepherd_personality=row.shepherd_personality,
            notifications=row.notifications,
        ),
        provenance=_provenance(row),
        dream_count=row.dream_count,
        goal_count=row.goal_count,
        active_habits=row.active_habits,
        token_version=row.token_version,
        last_login_at=row.last_login_at,
        last_active_at=row.last_active_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def dream_to_out(row: Dream) -> DreamOut:
    return DreamOut(
        id=row.id,
        slug=row.slug,
        title=row.title,
        vision=row.vision,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
