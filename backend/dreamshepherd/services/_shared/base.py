# dreamshepherd/services/_shared/base.py
from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError

from dreamshepherd.core import errors as api_errors
from dreamshepherd.services._shared.clock import utcnow
from dreamshepherd.services._shared.errors import (
    AuthError,
    AuthFailure,
    ConflictError,
    DuplicateEmailError,
    InternalError,
    LockedError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from dreamshepherd.services._shared.ports.session_store import SessionStoreError
from dreamshepherd.uow.sqlalchemy_uow import (
    SQLAlchemyReadOnlyUnitOfWork,
    SQLAlchemyUnitOfWork,
)

log = logging.getLogger(__name__)


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Provide helpers to run read-only and read-write units of work.
    * Convert storage failures into :class:`InternalError`.
    * Centralize error translation to API errors.

    Notes
    -----
    - Services must never touch the global session; always use a Unit of Work.
    - Collaborators (stores, providers, policies) are injected in ``__init__``.
    """

    # -------------------------- UoW helpers ---------------------------------

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        """
        Create a read-write Unit of Work.

        :returns: Read-write UoW instance.
        :rtype: SQLAlchemyUnitOfWork
        """
        return SQLAlchemyUnitOfWork()

    def ro_uow(self, *, enforce_db_readonly: bool = True) -> SQLAlchemyReadOnlyUnitOfWork:
        """
        Create a read-only Unit of Work.

        :param enforce_db_readonly: Apply `SET TRANSACTION READ ONLY` when supported.
        :type enforce_db_readonly: bool
        :returns: Read-only UoW instance.
        :rtype: SQLAlchemyReadOnlyUnitOfWork
        """
        return SQLAlchemyReadOnlyUnitOfWork(enforce_db_readonly=enforce_db_readonly)

    @contextmanager
    def storage_errors(self) -> Iterator[None]:
        """
        Re-raise database and session-store failures as :class:`InternalError`.

        Service errors raised inside the block pass through untouched.
        """
        try:
            yield
        except (SQLAlchemyError, SessionStoreError) as exc:
            log.error("storage failure: %s", type(exc).__name__, exc_info=True)
            raise InternalError() from exc

    @staticmethod
    def now_utc() -> datetime:
        return utcnow()

    # -------------------------- Error handling ------------------------------

    def translate_exceptions(self, exc: Exception) -> Exception:
        """
        Map domain/service-level errors to API-level (HTTP) errors.

        :param exc: Exception raised within the service.
        :type exc: Exception
        :returns: Translated exception ready to be re-raised.
        :rtype: Exception
        """
        if isinstance(exc, ValidationError):
            # → 422 with every violation
            return api_errors.Unprocessable(exc.as_dict())

        if isinstance(exc, NotFoundError):
            # → 404 Not Found
            return api_errors.NotFound(f"{exc.entity} not found")

        if isinstance(exc, ConflictError):
            # → 409 Conflict
            code = "email_taken" if isinstance(exc, DuplicateEmailError) else "conflict"
            return api_errors.Conflict(exc.detail, code=code)

        if isinstance(exc, AuthError):
            # → 401; only expiry is distinguishable so clients know to refresh
            if exc.reason is AuthFailure.EXPIRED:
                return api_errors.Unauthorized("Token expired", code="token_expired")
            return api_errors.Unauthorized("Invalid credentials")

        if isinstance(exc, LockedError):
            # → 423 Locked (no attempt counts or unlock time)
            return api_errors.Locked()

        if isinstance(exc, InternalError):
            return api_errors.APIError(
                message="Internal error",
                status_code=500,
                code="internal_server_error",
            )

        # Any other ServiceError subclass → 400 Bad Request
        if isinstance(exc, ServiceError):
            return api_errors.APIError(
                message=str(exc),
                status_code=400,
                code="bad_request",
            )

        # Fallback: return untouched (will bubble up to Flask handler)
        return exc
