"""
CredentialStore
===============

Password hashing with Argon2id and single-use opaque tokens.

- Encoded hashes embed salt and cost parameters, so a verification never
  needs external state and cost upgrades are detected per hash.
- ``verify`` fails closed: a corrupted or foreign hash yields ``False``.
"""

from __future__ import annotations

import hashlib
import logging
import secrets

from argon2 import PasswordHasher, Type
from argon2.exceptions import Argon2Error, InvalidHashError

from dreamshepherd.services._shared.errors import Violation, WeakInputError
from dreamshepherd.services._shared.validation import MIN_PASSWORD_LENGTH
from dreamshepherd.services.credentials.dto import Argon2Params, OpaqueToken

log = logging.getLogger(__name__)


class CredentialStore:
    """
    Hash and verify passwords; mint opaque tokens.

    The Argon2 C implementation releases the GIL while hashing, so threaded
    workers keep serving other requests during a hash.
    """

    def __init__(self, *, params: Argon2Params | None = None) -> None:
        """
        :param params: Argon2id cost parameters (defaults: 64 MiB, t=3, p=1).
        :type params: Argon2Params | None
        """
        self.params = params or Argon2Params()
        self._hasher = PasswordHasher(
            time_cost=self.params.time_cost,
            memory_cost=self.params.memory_cost,
            parallelism=self.params.parallelism,
            type=Type.ID,
        )

    def hash(self, raw: str) -> str:
        """
        Hash ``raw`` into a self-describing Argon2id string.

        :param raw: Plain password.
        :returns: Encoded hash (``$argon2id$v=19$m=...``).
        :raises WeakInputError: When ``raw`` is shorter than the minimum length.
        """
        if len(raw) < MIN_PASSWORD_LENGTH:
            raise WeakInputError(
                [
                    Violation(
                        "password",
                        f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
                    )
                ]
            )
        return self._hasher.hash(raw)

    def verify(self, credential: str | None, candidate: str) -> bool:
        """
        Check ``candidate`` against an encoded hash. Never raises.

        :param credential: Encoded Argon2 hash (``None`` is treated as a mismatch).
        :param candidate: Password attempt.
        :returns: ``True`` only on a successful match.
        """
        if not credential:
            return False
        try:
            return bool(self._hasher.verify(credential, candidate))
        except InvalidHashError:
            log.warning("credential.invalid_hash", extra={"event": "credential.invalid_hash"})
            return False
        except (Argon2Error, ValueError, TypeError):
            return False

    def needs_rehash(self, credential: str) -> bool:
        """Return ``True`` when ``credential`` was produced with other cost parameters."""
        try:
            return bool(self._hasher.check_needs_rehash(credential))
        except (InvalidHashError, ValueError):
            return False

    @staticmethod
    def digest(plain: str) -> str:
        """SHA-256 hex digest used to store opaque tokens."""
        return hashlib.sha256(plain.encode("utf-8")).hexdigest()

    def generate_opaque_token(self) -> OpaqueToken:
        """Return 32 random bytes (hex) together with their storable digest."""
        plain = secrets.token_hex(32)
        return OpaqueToken(plain=plain, digest=self.digest(plain))
