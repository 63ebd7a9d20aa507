"""
Unit tests for RedisIntroSessionStore using fakeredis.

These tests exercise the main flows:
- create + find (by token and by email)
- save (update and refusal after delete)
- delete and email index cleanup
- iter_records / purge_expired pruning of the token index
- storage failures surfacing as SessionStoreError
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import fakeredis
import pytest

from dreamshepherd.infra.redis.redis_session_store import RedisIntroSessionStore
from dreamshepherd.services._shared.ports import SessionDraft, SessionStoreError


@pytest.fixture
def fake_redis():
    """Provide a fresh FakeRedis instance for each test."""
    r = fakeredis.FakeRedis()
    r.flushall()
    return r


@pytest.fixture
def store(fake_redis):
    """Provide a RedisIntroSessionStore backed by FakeRedis."""
    return RedisIntroSessionStore(r=fake_redis, ttl=timedelta(days=30))


def _draft(**overrides) -> SessionDraft:
    data = {
        "title": "Write a novel",
        "vision": '{"blocks": []}',
        "email": "writer@example.com",
        "reminder_at": datetime.now(UTC) + timedelta(days=2),
    }
    data.update(overrides)
    return SessionDraft(**data)


def test_create_and_find_round_trip(store, fake_redis):
    record = store.create(_draft())
    loaded = store.find_by_token(record.token)

    assert loaded is not None
    assert loaded.id == record.id
    assert loaded.title == "Write a novel"
    assert loaded.vision == '{"blocks": []}'
    assert loaded.email == "writer@example.com"
    assert loaded.reminder_at == record.reminder_at
    assert loaded.created_at.tzinfo is not None
    assert loaded.reminder_sent is False

    ttl = fake_redis.ttl(f"intro:{record.token}")
    assert 0 < ttl <= int(timedelta(days=30).total_seconds())
    assert fake_redis.sismember(RedisIntroSessionStore.INDEX_KEY, record.token)


def test_find_by_email(store):
    record = store.create(_draft())
    assert store.find_by_email("WRITER@example.com").token == record.token
    assert store.find_by_email("other@example.com") is None


def test_record_without_email(store, fake_redis):
    record = store.create(_draft(email=None, reminder_at=None))
    loaded = store.find_by_token(record.token)
    assert loaded.email is None
    assert loaded.reminder_at is None
    assert fake_redis.keys("intro:email:*") == []


def test_save_updates_fields(store):
    record = store.create(_draft())
    record.title = "Write two novels"
    record.upgrade_prompt_shown = True
    record.mark_reminder_sent(datetime.now(UTC))

    assert store.save(record) is True
    loaded = store.find_by_token(record.token)
    assert loaded.title == "Write two novels"
    assert loaded.upgrade_prompt_shown is True
    assert loaded.reminder_sent is True
    assert loaded.reminder_sent_at is not None


def test_save_after_delete_is_refused(store):
    record = store.create(_draft())
    store.delete(record.token)
    assert store.save(record) is False
    assert store.find_by_token(record.token) is None


def test_delete_clears_email_pointer(store, fake_redis):
    record = store.create(_draft())
    store.delete(record.token)
    store.delete(record.token)  # idempotent

    assert fake_redis.get("intro:email:writer@example.com") is None
    assert not fake_redis.sismember(RedisIntroSessionStore.INDEX_KEY, record.token)
    assert store.find_by_email("writer@example.com") is None


def test_delete_keeps_newer_email_pointer(store, fake_redis):
    old = store.create(_draft())
    new = store.create(_draft())
    store.delete(old.token)
    assert store.find_by_email("writer@example.com").token == new.token


def test_iter_records_prunes_vanished_entries(store, fake_redis):
    kept = store.create(_draft(email="kept@example.com"))
    gone = store.create(_draft(email="gone@example.com"))
    fake_redis.delete(f"intro:{gone.token}")  # simulates key expiry

    assert [r.token for r in store.iter_records()] == [kept.token]
    assert not fake_redis.sismember(RedisIntroSessionStore.INDEX_KEY, gone.token)


def test_purge_expired_prunes_index(store, fake_redis):
    store.create(_draft(email="a@example.com"))
    gone = store.create(_draft(email="b@example.com"))
    fake_redis.delete(f"intro:{gone.token}")

    assert store.purge_expired() == 1
    assert store.purge_expired() == 0


def test_extend_pushes_expiry(store):
    record = store.create(_draft())
    before = record.expires_at
    store.extend(record, days=60)
    assert store.find_by_token(record.token).expires_at > before


def test_backend_failure_becomes_store_error():
    server = fakeredis.FakeServer()
    server.connected = False
    broken = RedisIntroSessionStore(r=fakeredis.FakeRedis(server=server))

    with pytest.raises(SessionStoreError):
        broken.find_by_token("a" * 64)
    with pytest.raises(SessionStoreError):
        broken.create(_draft())


def test_extend_refuses_zero_days(store):
    record = store.create(_draft())
    with pytest.raises(ValueError):
        store.extend(record, days=0)
    assert store.find_by_token(record.token) is not None
