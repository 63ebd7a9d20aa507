"""Dreamer repository: account lookups, token digests and revocation counter."""

from __future__ import annotations

from datetime import datetime
from typing import cast

from sqlalchemy import func, select, update
from sqlalchemy.orm import undefer

from dreamshepherd.models.dreamer import Dreamer
from dreamshepherd.repositories.base import BaseRepository


def normalize_email(email: str) -> str:
    """Return the canonical (trimmed, lowercased) form of ``email``."""
    return email.strip().lower()


class DreamerRepository(BaseRepository[Dreamer]):
    """Persistence-only repository for :class:`Dreamer`.

    It never verifies passwords or issues tokens; the credential column is
    only loaded when a caller explicitly asks for it.
    """

    model = Dreamer

    def _updatable_fields(self) -> set[str]:
        """Profile and preference fields a dreamer may edit."""
        return {
            "first_name",
            "last_name",
            "display_name",
            "avatar_url",
            "theme",
            "animation_speed",
            "shepherd_personality",
            "notifications",
        }

    # ---------------------------- Lookup helpers ----------------------------

    def get_by_email(self, email: str, *, include_credential: bool = False) -> Dreamer | None:
        """Fetch a dreamer by email (case-insensitive).

        :param email: Email address to normalise and search.
        :type email: str
        :param include_credential: Load ``password_hash`` eagerly.
        :type include_credential: bool
        :returns: Dreamer instance or ``None`` when not found.
        :rtype: Dreamer | None
        """
        stmt = select(Dreamer).where(Dreamer.email == normalize_email(email))
        if include_credential:
            stmt = stmt.options(undefer(Dreamer.password_hash))
        result = self.session.execute(stmt).scalars().first()
        return cast(Dreamer | None, result)

    def get_with_credential(self, dreamer_id: int) -> Dreamer | None:
        """Fetch a dreamer by id with ``password_hash`` loaded."""
        stmt = (
            select(Dreamer)
            .where(Dreamer.id == dreamer_id)
            .options(undefer(Dreamer.password_hash))
        )
        return cast(Dreamer | None, self.session.execute(stmt).scalars().first())

    def exists_by_email(self, email: str) -> bool:
        """Return ``True`` when an account with the provided email exists."""
        stmt = select(Dreamer.id).where(Dreamer.email == normalize_email(email))
        return bool(self.session.execute(stmt).first())

    def get_by_reset_digest(self, digest: str) -> Dreamer | None:
        """Fetch the dreamer holding ``digest`` as password-reset token."""
        stmt = select(Dreamer).where(Dreamer.password_reset_token == digest)
        return cast(Dreamer | None, self.session.execute(stmt).scalars().first())

    def get_by_verification_digest(self, digest: str) -> Dreamer | None:
        """Fetch the dreamer holding ``digest`` as email-verification token."""
        stmt = select(Dreamer).where(Dreamer.email_verification_token == digest)
        return cast(Dreamer | None, self.session.execute(stmt).scalars().first())

    # ---------------------------- Revocation ----------------------------

    def bump_token_version(self, dreamer_id: int) -> int | None:
        """
        Atomically increment ``token_version``.

        A single ``UPDATE ... SET token_version = token_version + 1`` keeps
        concurrent revocations from losing increments.

        :returns: New counter value, or ``None`` when the dreamer is missing.
        """
        result = self.session.execute(
            update(Dreamer)
            .where(Dreamer.id == dreamer_id)
            .values(token_version=Dreamer.token_version + 1)
        )
        if result.rowcount == 0:
            return None
        stmt = select(Dreamer.token_version).where(Dreamer.id == dreamer_id)
        return int(self.session.execute(stmt).scalar_one())

    def touch_last_active(self, dreamer_id: int, now: datetime) -> None:
        """Stamp ``last_active_at`` without loading the row."""
        self.session.execute(
            update(Dreamer).where(Dreamer.id == dreamer_id).values(last_active_at=now)
        )

    # ---------------------------- Reporting ----------------------------

    def count_upgraded_since(self, since: datetime) -> int:
        """Count accounts created from an intro session at or after ``since``."""
        stmt = select(func.count(Dreamer.id)).where(Dreamer.upgraded_at >= since)
        return int(self.session.execute(stmt).scalar_one())
