"""Dream repository."""

from __future__ import annotations

from sqlalchemy import select

from dreamshepherd.models.dream import Dream
from dreamshepherd.repositories.base import BaseRepository


class DreamRepository(BaseRepository[Dream]):
    """Persistence-only repository for :class:`Dream`."""

    model = Dream

    def list_for_dreamer(self, dreamer_id: int) -> list[Dream]:
        """Return a dreamer's dreams, oldest first."""
        stmt = (
            select(Dream)
            .where(Dream.dreamer_id == dreamer_id)
            .order_by(Dream.created_at.asc(), Dream.id.asc())
        )
        return list(self.session.execute(stmt).scalars().all())
