"""Dream artifact owned by a Dreamer."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING
from uuid import uuid4

from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dreamshepherd.core.extensions import db

from .base import ReprMixin, TimestampMixin

if TYPE_CHECKING:
    from .dreamer import Dreamer

_NON_SLUG_CHARS = re.compile(r"[^\w-]+")


def slugify(title: str) -> str:
    """
    Derive a URL slug from a dream title.

    Lowercases, turns whitespace runs into ``-`` and strips anything that is
    not a word character or ``-``. Empty results fall back to ``"dream"``.

    :param title: Dream title.
    :type title: str
    :returns: Slug (at most 200 characters).
    :rtype: str
    """
    slug = re.sub(r"\s+", "-", title.strip().lower())
    slug = _NON_SLUG_CHARS.sub("", slug).strip("-")
    return slug[:200] or "dream"


class Dream(ReprMixin, TimestampMixin, db.Model):
    """A captured dream: title plus free-form vision (editor JSON as text)."""

    __tablename__ = "dreams"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    dreamer_id: Mapped[int] = mapped_column(
        ForeignKey("dreamers.id", ondelete="CASCADE"), nullable=False
    )
    slug: Mapped[str] = mapped_column(String(220), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    vision: Mapped[str] = mapped_column(Text, nullable=False, default="")

    __table_args__ = (
        UniqueConstraint("dreamer_id", "slug", name="uq_dreams_dreamer_id_slug"),
        Index("ix_dreams_dreamer_id", "dreamer_id"),
    )

    dreamer: Mapped[Dreamer] = relationship("Dreamer", back_populates="dreams")
