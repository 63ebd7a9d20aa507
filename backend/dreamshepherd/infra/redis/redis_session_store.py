# comments in English; reST docstrings
from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

import redis  # type: ignore[import-untyped]

from dreamshepherd.services._shared.clock import as_utc, utcnow
from dreamshepherd.services._shared.ports.session_store import (
    DEFAULT_SESSION_TTL,
    IntroSessionStore,
    SessionDraft,
    SessionRecord,
    SessionStoreError,
    new_session_token,
)

_SAVE_RETRIES = 3


@contextmanager
def _store_errors() -> Iterator[None]:
    try:
        yield
    except redis.RedisError as exc:
        raise SessionStoreError(str(exc)) from exc


def _s(value: Any) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else str(value)


def _dt_out(value: datetime | None) -> str:
    return as_utc(value).isoformat() if value is not None else ""


def _dt_in(value: str | None) -> datetime | None:
    return as_utc(datetime.fromisoformat(value)) if value else None


@dataclass(slots=True)
class RedisIntroSessionStore(IntroSessionStore):
    """
    Redis-backed intro session store.

    Layout
    ------
    - ``intro:{token}``: hash with the record fields, ``EXPIREAT`` = record expiry.
    - ``intro:email:{email}``: token of the live record for that email, same expiry.
    - ``intro:index``: set of tokens, used by maintenance sweeps. Entries whose
      hash has expired are pruned lazily.

    :param r: A Redis client (already connected).
    :param ttl: Lifetime of newly created records.
    """

    r: redis.Redis
    ttl: timedelta = DEFAULT_SESSION_TTL

    INDEX_KEY = "intro:index"

    # -------------------- helpers --------------------

    @staticmethod
    def _k(token: str) -> str:
        return f"intro:{token}"

    @staticmethod
    def _ke(email: str) -> str:
        return f"intro:email:{email.strip().lower()}"

    @staticmethod
    def _to_ts(dt: datetime) -> int:
        return int(as_utc(dt).timestamp())

    @staticmethod
    def _to_mapping(record: SessionRecord) -> dict[str, str]:
        return {
            "id": record.id,
            "token": record.token,
            "email": record.email or "",
            "title": record.title,
            "vision": record.vision,
            "reminder_at": _dt_out(record.reminder_at),
            "reminder_sent": "1" if record.reminder_sent else "0",
            "reminder_sent_at": _dt_out(record.reminder_sent_at),
            "intro_completed_at": _dt_out(record.intro_completed_at),
            "created_at": _dt_out(record.created_at),
            "last_active_at": _dt_out(record.last_active_at),
            "expires_at": _dt_out(record.expires_at),
            "upgrade_prompt_shown": "1" if record.upgrade_prompt_shown else "0",
        }

    @staticmethod
    def _from_mapping(raw: dict[Any, Any]) -> SessionRecord:
        data = {_s(k): _s(v) for k, v in raw.items()}
        created_at = _dt_in(data.get("created_at"))
        expires_at = _dt_in(data.get("expires_at"))
        if created_at is None or expires_at is None:
            raise SessionStoreError("Corrupted intro session record")
        return SessionRecord(
            id=data["id"],
            token=data["token"],
            email=data.get("email") or None,
            title=data.get("title", ""),
            vision=data.get("vision", ""),
            reminder_at=_dt_in(data.get("reminder_at")),
            reminder_sent=data.get("reminder_sent") == "1",
            reminder_sent_at=_dt_in(data.get("reminder_sent_at")),
            intro_completed_at=_dt_in(data.get("intro_completed_at")),
            created_at=created_at,
            last_active_at=_dt_in(data.get("last_active_at")),
            expires_at=expires_at,
            upgrade_prompt_shown=data.get("upgrade_prompt_shown") == "1",
        )

    def _write(self, pipe: Any, record: SessionRecord) -> None:
        key = self._k(record.token)
        exp = self._to_ts(record.expires_at)
        pipe.hset(key, mapping=self._to_mapping(record))
        pipe.expireat(key, exp)
        if record.email:
            pipe.set(self._ke(record.email), record.token, exat=exp)
        pipe.sadd(self.INDEX_KEY, record.token)

    # -------------------- API ------------------------

    def create(self, draft: SessionDraft) -> SessionRecord:
        now = utcnow()
        with _store_errors():
            token = new_session_token()
            while self.r.exists(self._k(token)):
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
            pipe = self.r.pipeline(transaction=True)
            self._write(pipe, record)
            pipe.execute()
        return record

    def find_by_token(self, token: str) -> SessionRecord | None:
        with _store_errors():
            raw = self.r.hgetall(self._k(token))
        if not raw:
            return None
        record = self._from_mapping(raw)
        if record.is_expired(utcnow()):
            return None
        return record

    def find_by_email(self, email: str) -> SessionRecord | None:
        with _store_errors():
            token = self.r.get(self._ke(email))
        if token is None:
            return None
        record = self.find_by_token(_s(token))
        if record is None or (record.email or "").lower() != email.strip().lower():
            return None
        return record

    def save(self, record: SessionRecord) -> bool:
        """
        Persist ``record`` only if it still exists.

        Uses WATCH/MULTI/EXEC so a concurrent delete is never undone by a
        late write.

        :returns: ``False`` when the record is gone.
        """
        key = self._k(record.token)
        with _store_errors():
            for _ in range(_SAVE_RETRIES):
                with self.r.pipeline(transaction=True) as pipe:
                    try:
                        pipe.watch(key)
                        if not pipe.exists(key):
                            pipe.unwatch()
                            return False
                        pipe.multi()
                        self._write(pipe, record)
                        pipe.execute()
                        return True
                    except redis.WatchError:
                        continue
        raise SessionStoreError("Intro session kept changing during save")

    def extend(self, record: SessionRecord, days: int = 30) -> SessionRecord:
        record.extend(utcnow(), days)
        self.save(record)
        return record

    def delete(self, token: str) -> None:
        """Hard delete; deleting a missing record is a no-op."""
        key = self._k(token)
        with _store_errors():
            email = self.r.hget(key, "email")
            pipe = self.r.pipeline(transaction=True)
            pipe.delete(key)
            pipe.srem(self.INDEX_KEY, token)
            pipe.execute()
            if email:
                email_key = self._ke(_s(email))
                current = self.r.get(email_key)
                if current is not None and _s(current) == token:
                    self.r.delete(email_key)

    def iter_records(self) -> list[SessionRecord]:
        now = utcnow()
        records: list[SessionRecord] = []
        with _store_errors():
            tokens = [_s(t) for t in self.r.smembers(self.INDEX_KEY)]
            for token in tokens:
                raw = self.r.hgetall(self._k(token))
                if not raw:
                    self.r.srem(self.INDEX_KEY, token)
                    continue
                record = self._from_mapping(raw)
                if not record.is_expired(now):
                    records.append(record)
        return records

    def purge_expired(self) -> int:
        """
        Key expiry already removes records; this only prunes stale index entries.

        :returns: Number of index entries removed.
        """
        removed = 0
        with _store_errors():
            for token in [_s(t) for t in self.r.smembers(self.INDEX_KEY)]:
                if not self.r.exists(self._k(token)):
                    self.r.srem(self.INDEX_KEY, token)
                    removed += 1
        return removed
