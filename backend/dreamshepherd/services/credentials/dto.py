"""DTOs for the credential store."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Argon2Params:
    """
    Argon2id cost parameters.

    :param memory_cost: Memory in KiB (65536 = 64 MiB).
    :type memory_cost: int
    :param time_cost: Number of iterations.
    :type time_cost: int
    :param parallelism: Number of lanes.
    :type parallelism: int
    """

    memory_cost: int = 65536
    time_cost: int = 3
    parallelism: int = 1


@dataclass(frozen=True, slots=True)
class OpaqueToken:
    """
    A single-use secret: ``plain`` goes to the user, only ``digest`` is stored.

    :param plain: 64 hex characters handed out once.
    :type plain: str
    :param digest: SHA-256 hex digest of ``plain``.
    :type digest: str
    """

    plain: str
    digest: str
