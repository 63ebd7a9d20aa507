"""Unit tests for the argon2 credential store and opaque tokens."""

from __future__ import annotations

import pytest

from dreamshepherd.services._shared.errors import WeakInputError
from dreamshepherd.services.credentials.dto import Argon2Params
from dreamshepherd.services.credentials.service import CredentialStore

CHEAP = Argon2Params(memory_cost=1024, time_cost=1, parallelism=1)


@pytest.fixture()
def store() -> CredentialStore:
    return CredentialStore(params=CHEAP)


def test_hash_is_self_describing_argon2id(store):
    encoded = store.hash("correct-horse")
    assert encoded.startswith("$argon2id$")
    assert "m=1024" in encoded
    assert store.hash("correct-horse") != encoded  # fresh salt


def test_verify_round_trip(store):
    encoded = store.hash("correct-horse")
    assert store.verify(encoded, "correct-horse") is True
    assert store.verify(encoded, "wrong-horse") is False


@pytest.mark.parametrize("credential", [None, "", "not-a-hash", "$argon2id$garbage"])
def test_verify_fails_closed(store, credential):
    assert store.verify(credential, "whatever") is False


def test_short_password_rejected(store):
    with pytest.raises(WeakInputError) as exc:
        store.hash("short")
    assert exc.value.as_dict() == {"password": ["Password must be at least 8 characters"]}


def test_needs_rehash_on_parameter_change(store):
    encoded = store.hash("correct-horse")
    assert store.needs_rehash(encoded) is False

    stronger = CredentialStore(params=Argon2Params(memory_cost=2048, time_cost=2))
    assert stronger.needs_rehash(encoded) is True
    # Old hashes still verify under new parameters
    assert stronger.verify(encoded, "correct-horse") is True


def test_opaque_token_stores_only_digest(store):
    token = store.generate_opaque_token()
    assert len(token.plain) == 64
    assert token.digest == store.digest(token.plain)
    assert token.digest != token.plain
    assert store.generate_opaque_token().plain != token.plain
