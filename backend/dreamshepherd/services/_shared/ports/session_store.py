"""
Intro session (IntroDreamer) record and its store port.

A :class:`SessionRecord` is the anonymous, time-boxed identity created when a
visitor captures a dream before registering. It is addressed by an opaque
bearer token and expires ``ttl`` after creation unless extended. Records past
their expiry are treated as absent by every lookup, whether or not the
backend has physically removed them yet.
"""

from __future__ import annotations

import secrets
import threading
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Protocol
from uuid import uuid4

from dreamshepherd.services._shared.clock import utcnow

DEFAULT_SESSION_TTL = timedelta(days=30)


class SessionStoreError(Exception):
    """Raised by store adapters when the backing storage fails."""


def new_session_token() -> str:
    """Return a fresh bearer token (32 random bytes, hex-encoded)."""
    return secrets.token_hex(32)


@dataclass(slots=True)
class SessionDraft:
    """
    Payload for creating a session record.

    :param title: Dream title (required).
    :param vision: Free-form vision text (editor JSON serialized as string).
    :param email: Optional contact email (already normalized).
    :param reminder_at: Optional reminder instant.
    :param intro_completed_at: When the intro flow was finished, if known.
    """

    title: str
    vision: str = ""
    email: str | None = None
    reminder_at: datetime | None = None
    intro_completed_at: datetime | None = None


@dataclass(slots=True)
class SessionRecord:
    """
    Stored intro session. Mutations go through the transition methods and are
    persisted with :meth:`IntroSessionStore.save`.
    """

    token: str
    title: str
    created_at: datetime
    expires_at: datetime
    id: str = field(default_factory=lambda: uuid4().hex)
    email: str | None = None
    vision: str = ""
    reminder_at: datetime | None = None
    reminder_sent: bool = False
    reminder_sent_at: datetime | None = None
    intro_completed_at: datetime | None = None
    last_active_at: datetime | None = None
    upgrade_prompt_shown: bool = False

    # -------------------- Queries --------------------

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def is_reminder_due(self, now: datetime) -> bool:
        """Reminder set, its time reached, not yet sent, and the record still live."""
        return (
            self.reminder_at is not None
            and now >= self.reminder_at
            and not self.reminder_sent
            and not self.is_expired(now)
        )

    # -------------------- Transitions --------------------

    def mark_reminder_sent(self, now: datetime) -> None:
        self.reminder_sent = True
        self.reminder_sent_at = now

    def reschedule_reminder(self, reminder_at: datetime | None) -> None:
        """Set a new reminder time and re-arm delivery."""
        self.reminder_at = reminder_at
        self.reminder_sent = False
        self.reminder_sent_at = None

    def extend(self, now: datetime, days: int = 30) -> None:
        """Push expiry to ``now + days``.

        :raises ValueError: When ``days`` is below one; expiry must stay in the future.
        """
        if days < 1:
            raise ValueError(f"extension must be at least one day, got {days}")
        self.expires_at = now + timedelta(days=days)

    def touch(self, now: datetime) -> None:
        self.last_active_at = now


class IntroSessionStore(Protocol):
    """Port for persisting intro session records with expiry."""

    ttl: timedelta

    def create(self, draft: SessionDraft) -> SessionRecord: ...

    def find_by_token(self, token: str) -> SessionRecord | None: ...

    def find_by_email(self, email: str) -> SessionRecord | None: ...

    def save(self, record: SessionRecord) -> bool: ...

    def extend(self, record: SessionRecord, days: int = 30) -> SessionRecord: ...

    def delete(self, token: str) -> None: ...

    def iter_records(self) -> list[SessionRecord]: ...

    def purge_expired(self) -> int: ...


@dataclass(slots=True)
class InMemoryIntroSessionStore(IntroSessionStore):
    """
    Process-local store used in tests and single-process development.

    Lookups hand out copies, so callers persist changes explicitly through
    :meth:`save` exactly as with the Redis adapter.
    """

    ttl: timedelta = DEFAULT_SESSION_TTL
    clock: Callable[[], datetime] = utcnow
    _records: dict[str, SessionRecord] = field(default_factory=dict)
    _lock: threading.RLock = field(default_factory=threading.RLock)

    def create(self, draft: SessionDraft) -> SessionRecord:
        now = self.clock()
        with self._lock:
            token = new_session_token()
            while token in self._records:
                token = new_session_token()
            record = SessionRecord(
                token=token,
                title=draft.title,
                vision=draft.vision,
                email=draft.email,
                reminder_at=draft.reminder_at,
                intro_completed_at=draft.intro_completed_at,
                created_at=now,
                last_active_at=now,
                expires_at=now + self.ttl,
            )
            self._records[token] = record
            return replace(record)

    def find_by_token(self, token: str) -> SessionRecord | None:
        with self._lock:
            record = self._records.get(token)
            if record is None or record.is_expired(self.clock()):
                return None
            return replace(record)

    def find_by_email(self, email: str) -> SessionRecord | None:
        needle = email.strip().lower()
        now = self.clock()
        with self._lock:
            matches = [
                r
                for r in self._records.values()
                if r.email is not None and r.email.lower() == needle and not r.is_expired(now)
            ]
            if not matches:
                return None
            return replace(max(matches, key=lambda r: r.created_at))

    def save(self, record: SessionRecord) -> bool:
        with self._lock:
            if record.token not in self._records:
                return False
            self._records[record.token] = replace(record)
            return True

    def extend(self, record: SessionRecord, days: int = 30) -> SessionRecord:
        record.extend(self.clock(), days)
        self.save(record)
        return record

    def delete(self, token: str) -> None:
        with self._lock:
            self._records.pop(token, None)

    def iter_records(self) -> list[SessionRecord]:
        now = self.clock()
        with self._lock:
            return [replace(r) for r in self._records.values() if not r.is_expired(now)]

    def purge_expired(self) -> int:
        now = self.clock()
        with self._lock:
            stale = [t for t, r in self._records.items() if r.is_expired(now)]
            for token in stale:
                del self._records[token]
            return len(stale)

    def clear(self) -> None:
        """Drop every record (test helper)."""
        with self._lock:
            self._records.clear()
