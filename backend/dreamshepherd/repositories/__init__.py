"""Repository package exposing persistence-layer access for all domain models."""

from __future__ import annotations

from dreamshepherd.repositories.base import BaseRepository
from dreamshepherd.repositories.dream import DreamRepository
from dreamshepherd.repositories.dreamer import DreamerRepository, normalize_email

__all__ = [
    "BaseRepository",
    "DreamRepository",
    "DreamerRepository",
    "normalize_email",
]
