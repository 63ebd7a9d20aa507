"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and never import Flask or HTTP
helpers. They serve as stable contracts between repositories, ports, domain
models and application services.

The translation to HTTP responses (RFC 7807) is handled by
``dreamshepherd/core/errors.py`` via ``BaseService.translate_exceptions()``.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from sqlalchemy.exc import IntegrityError


def violates(exc: IntegrityError, constraint_name: str, *, columns: Iterable[str] = ()) -> bool:
    """
    Check whether an IntegrityError originates from a specific constraint.

    Parameters
    ----------
    exc : IntegrityError
        The exception raised by SQLAlchemy during flush/commit.
    constraint_name : str
        The name of the database constraint to match (e.g., 'uq_dreamers_email').
    columns : Iterable[str]
        ``table.column`` names to match when the driver reports columns
        instead of the constraint name (SQLite does).

    Returns
    -------
    bool
        True if the IntegrityError matches the given constraint.
    """
    message = str(exc.orig).lower() if exc.orig else ""
    if constraint_name.lower() in message:
        return True
    return any(col.lower() in message for col in columns)


# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - The API layer translates them through ``BaseService.translate_exceptions``.
    """

    pass


# --------------------------------------------------------------------------- #
# Specific domain-level errors
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class Violation:
    """
    A single failed validation rule.

    :param field: Input field the rule applies to.
    :type field: str
    :param message: Client-safe explanation.
    :type message: str
    """

    field: str
    message: str


@dataclass(slots=True)
class ValidationError(ServiceError):
    """
    Raised with **every** violation found in an input, never just the first.

    :param violations: Accumulated rule failures.
    :type violations: list[Violation]
    """

    violations: list[Violation] = field(default_factory=list)

    def as_dict(self) -> dict[str, list[str]]:
        """Group messages by field (``{"password": ["..."]}``)."""
        grouped: dict[str, list[str]] = {}
        for v in self.violations:
            grouped.setdefault(v.field, []).append(v.message)
        return grouped

    def __str__(self) -> str:  # pragma: no cover
        return "; ".join(f"{v.field}: {v.message}" for v in self.violations)


class WeakInputError(ValidationError):
    """Raised by the credential store for passwords shorter than the minimum."""


@dataclass(slots=True)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found.

    :param entity: Entity name (e.g., "Dreamer", "IntroSession").
    :type entity: str
    :param key: Identifier or search key (never a secret token).
    :type key: str | int
    """

    entity: str
    key: str | int

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.entity} not found: {self.key}"


@dataclass(slots=True)
class ConflictError(ServiceError):
    """
    Raised when a unique constraint or business rule conflict occurs.

    :param entity: Entity name (e.g., "Dreamer").
    :type entity: str
    :param detail: Short human-readable explanation.
    :type detail: str
    """

    entity: str
    detail: str

    def __str__(self) -> str:  # pragma: no cover
        return f"Conflict on {self.entity}: {self.detail}"


@dataclass(slots=True)
class DuplicateEmailError(ConflictError):
    """Raised when an account already owns the (normalized) email."""

    entity: str = "Dreamer"
    detail: str = "An account with this email already exists. Please log in instead."


class AuthFailure(str, Enum):
    """Why a credential or token was rejected."""

    EXPIRED = "expired"
    REVOKED = "revoked"
    MALFORMED = "malformed"
    WRONG_KIND = "wrong_kind"
    WRONG_CREDENTIAL = "wrong_credential"


@dataclass(slots=True)
class AuthError(ServiceError):
    """
    Raised when authentication fails.

    Clients only ever see a generic message; ``reason`` is for logs, tests
    and the expired-token hint.

    :param reason: Failure category.
    :type reason: AuthFailure
    """

    reason: AuthFailure

    def __str__(self) -> str:  # pragma: no cover
        return f"Authentication failed ({self.reason.value})"


@dataclass(slots=True)
class LockedError(ServiceError):
    """
    Raised while an account is locked after repeated failed logins.

    :param until: End of the lock window (internal use; not exposed to clients).
    :type until: datetime | None
    """

    until: datetime | None = None

    def __str__(self) -> str:  # pragma: no cover
        return "Account temporarily locked"


class InternalError(ServiceError):
    """Raised when a backing store fails; details stay in the logs."""

    def __init__(self, message: str = "Internal storage failure") -> None:
        super().__init__(message)
