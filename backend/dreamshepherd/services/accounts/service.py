"""
AccountService
==============

Permanent identity records (Dreamer):

- Direct registration with a unique, normalized email.
- Credential checks with time-boxed lockout after repeated failures.
- Revocation counter bumps (log out everywhere), including after password
  change and password reset.
- Single-use opaque tokens for password reset and email verification.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from dreamshepherd.models.dreamer import EMAIL_UNIQUE_CONSTRAINT, Dreamer
from dreamshepherd.repositories.dreamer import normalize_email
from dreamshepherd.services._shared.base import BaseService
from dreamshepherd.services._shared.errors import (
    AuthError,
    AuthFailure,
    ConflictError,
    DuplicateEmailError,
    LockedError,
    NotFoundError,
    violates,
)
from dreamshepherd.services._shared.validation import (
    MIN_PASSWORD_LENGTH,
    ViolationCollector,
    check_email,
    check_password,
    check_profile,
)
from dreamshepherd.services.accounts._converters import dream_to_out, dreamer_to_out
from dreamshepherd.services.accounts.dto import (
    AccountOut,
    DreamOut,
    LoginIn,
    LoginPolicy,
    PasswordChangeIn,
    PasswordResetIn,
    PasswordResetTicketOut,
    ProfileUpdateIn,
    RegisterIn,
    VerificationTicketOut,
)
from dreamshepherd.services.credentials.service import CredentialStore

log = logging.getLogger(__name__)

EMAIL_COLUMNS = ("dreamers.email",)


class AccountService(BaseService):
    """
    Account lifecycle: registration, login checks, revocation and recovery.
    """

    def __init__(
        self,
        *,
        credentials: CredentialStore,
        policy: LoginPolicy | None = None,
    ) -> None:
        """
        :param credentials: Password hasher and opaque-token factory.
        :param policy: Lockout and token lifetimes.
        """
        super().__init__()
        self.credentials = credentials
        self.policy = policy or LoginPolicy()

    # ------------------------------------------------------------------ #
    # Registration / reads
    # ------------------------------------------------------------------ #

    def register(self, dto: RegisterIn) -> AccountOut:
        """
        Create an account without an intro session.

        :raises ValidationError: With every violated rule.
        :raises DuplicateEmailError: When the normalized email is taken.
        """
        collector = ViolationCollector()
        check_email(collector, dto.email, required=True)
        check_password(collector, dto.password)
        check_profile(
            collector,
            first_name=dto.first_name,
            last_name=dto.last_name,
            display_name=dto.display_name,
        )
        collector.raise_if_any()

        email = normalize_email(dto.email)
        with self.storage_errors():
            with self.ro_uow() as uow:
                if uow.dreamers.exists_by_email(email):
                    raise DuplicateEmailError()

        # Hash outside the transaction
        password_hash = self.credentials.hash(dto.password)
        now = self.now_utc()

        with self.storage_errors():
            try:
                with self.rw_uow() as uow:
                    dreamer = Dreamer(
                        email=email,
                        password_hash=password_hash,
                        first_name=dto.first_name,
                        last_name=dto.last_name,
                        display_name=dto.display_name or dto.first_name,
                        journey_started_at=now,
                        last_active_at=now,
                    )
                    uow.dreamers.add(dreamer)
                    out = dreamer_to_out(dreamer)
            except IntegrityError as exc:
                if violates(exc, EMAIL_UNIQUE_CONSTRAINT, columns=EMAIL_COLUMNS):
                    raise DuplicateEmailError() from exc
                raise

        log.info("account.registered", extra={"event": "account.registered", "dreamer_id": out.id})
        return out

    def get(self, dreamer_id: int) -> AccountOut:
        """:raises NotFoundError: When the account does not exist."""
        with self.storage_errors(), self.ro_uow() as uow:
            dreamer = uow.dreamers.get(dreamer_id)
            if dreamer is None:
                raise NotFoundError("Dreamer", dreamer_id)
            return dreamer_to_out(dreamer)

    def list_dreams(self, dreamer_id: int) -> list[DreamOut]:
        """Dreams owned by the account, oldest first."""
        with self.storage_errors(), self.ro_uow() as uow:
            return [dream_to_out(d) for d in uow.dreams.list_for_dreamer(dreamer_id)]

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def verify_login(self, dto: LoginIn) -> AccountOut:
        """
        Check credentials and maintain the lockout state.

        The lock is checked before the password, so a locked account never
        reveals whether a guess was right. The counter update is committed
        even when the attempt fails.

        :returns: The authenticated account.
        :raises LockedError: While ``lock_until`` lies in the future.
        :raises AuthError: ``WRONG_CREDENTIAL`` for unknown email or bad password.
        """
        now = self.now_utc()
        email = normalize_email(dto.email or "")
        failure: Exception

        with self.storage_errors(), self.rw_uow() as uow:
            dreamer = uow.dreamers.get_by_email(email, include_credential=True)
            if dreamer is None:
                failure = AuthError(AuthFailure.WRONG_CREDENTIAL)
            elif dreamer.is_locked(now):
                failure = LockedError(until=dreamer.lock_until)
            elif not self.credentials.verify(dreamer.password_hash, dto.password):
                locked = dreamer.register_failed_login(
                    now,
                    max_attempts=self.policy.max_attempts,
                    lockout=self.policy.lockout,
                )
                if locked:
                    log.warning(
                        "account.locked",
                        extra={"event": "account.locked", "dreamer_id": dreamer.id},
                    )
                failure = AuthError(AuthFailure.WRONG_CREDENTIAL)
            else:
                if (
                    len(dto.password) >= MIN_PASSWORD_LENGTH
                    and self.credentials.needs_rehash(dreamer.password_hash)
                ):
                    dreamer.password_hash = self.credentials.hash(dto.password)
                dreamer.register_successful_login(now)
                uow.dreamers.flush()
                return dreamer_to_out(dreamer)

        log.info(
            "account.login_failed",
            extra={"event": "account.login_failed", "reason": type(failure).__name__},
        )
        raise failure

    # ------------------------------------------------------------------ #
    # Revocation / activity
    # ------------------------------------------------------------------ #

    def revoke_all_sessions(self, dreamer_id: int) -> int:
        """
        Invalidate every token issued so far for the account.

        :returns: The new revocation counter.
        :raises NotFoundError: When the account does not exist.
        """
        with self.storage_errors(), self.rw_uow() as uow:
            version = uow.dreamers.bump_token_version(dreamer_id)
            if version is None:
                raise NotFoundError("Dreamer", dreamer_id)
        log.info(
            "account.sessions_revoked",
            extra={"event": "account.sessions_revoked", "dreamer_id": dreamer_id},
        )
        return version

    def touch_last_active(self, dreamer_id: int) -> None:
        """Stamp activity; failures are logged and never raised."""
        try:
            with self.rw_uow() as uow:
                uow.dreamers.touch_last_active(dreamer_id, self.now_utc())
        except SQLAlchemyError:
            log.warning(
                "account.touch_failed",
                extra={"event": "account.touch_failed", "dreamer_id": dreamer_id},
                exc_info=True,
            )

    # ------------------------------------------------------------------ #
    # Profile
    # ------------------------------------------------------------------ #

    def update_profile(self, dreamer_id: int, dto: ProfileUpdateIn) -> AccountOut:
        """
        Apply profile and preference edits.

        :raises ValidationError: With every violated rule.
        :raises NotFoundError: When the account does not exist.
        """
        collector = ViolationCollector()
        check_profile(
            collector,
            first_name=dto.first_name,
            last_name=dto.last_name,
            display_name=dto.display_name,
            theme=dto.theme,
            animation_speed=dto.animation_speed,
            shepherd_personality=dto.shepherd_personality,
        )
        collector.raise_if_any()

        fields = {
            "first_name": dto.first_name,
            "last_name": dto.last_name,
            "display_name": dto.display_name,
            "avatar_url": dto.avatar_url,
            "theme": dto.theme,
            "animation_speed": dto.animation_speed,
            "shepherd_personality": dto.shepherd_personality,
            "notifications": dto.notifications,
        }
        with self.storage_errors(), self.rw_uow() as uow:
            dreamer = uow.dreamers.get(dreamer_id)
            if dreamer is None:
                raise NotFoundError("Dreamer", dreamer_id)
            uow.dreamers.assign_updates(
                dreamer, {k: v for k, v in fields.items() if v is not None}
            )
            return dreamer_to_out(dreamer)

    # ------------------------------------------------------------------ #
    # Password change / reset
    # ------------------------------------------------------------------ #

    def change_password(self, dreamer_id: int, dto: PasswordChangeIn) -> AccountOut:
        """
        Replace the password after checking the current one, then revoke sessions.

        :raises ValidationError: When the new password is too short.
        :raises AuthError: ``WRONG_CREDENTIAL`` when the current password is wrong.
        """
        collector = ViolationCollector()
        check_password(collector, dto.new_password)
        collector.raise_if_any()
        new_hash = self.credentials.hash(dto.new_password)

        with self.storage_errors(), self.rw_uow() as uow:
            dreamer = uow.dreamers.get_with_credential(dreamer_id)
            if dreamer is None:
                raise NotFoundError("Dreamer", dreamer_id)
            if not self.credentials.verify(dreamer.password_hash, dto.current_password):
                raise AuthError(AuthFailure.WRONG_CREDENTIAL)
            dreamer.password_hash = new_hash
            dreamer.password_reset_token = None
            dreamer.password_reset_expires = None
            uow.dreamers.flush()
            uow.dreamers.bump_token_version(dreamer_id)
            out = dreamer_to_out(dreamer)

        log.info(
            "account.password_changed",
            extra={"event": "account.password_changed", "dreamer_id": dreamer_id},
        )
        return out

    def request_password_reset(self, email: str) -> PasswordResetTicketOut | None:
        """
        Issue a single-use reset token.

        :returns: The ticket to deliver, or ``None`` for an unknown email
            (callers answer identically in both cases).
        """
        now = self.now_utc()
        token = self.credentials.generate_opaque_token()
        with self.storage_errors(), self.rw_uow() as uow:
            dreamer = uow.dreamers.get_by_email(email or "")
            if dreamer is None:
                return None
            dreamer.password_reset_token = token.digest
            dreamer.password_reset_expires = now + self.policy.reset_ttl
            ticket = PasswordResetTicketOut(
                dreamer_id=dreamer.id,
                email=dreamer.email,
                plain_token=token.plain,
                expires_at=dreamer.password_reset_expires,
            )
        log.info(
            "account.password_reset_requested",
            extra={"event": "account.password_reset_requested", "dreamer_id": ticket.dreamer_id},
        )
        return ticket

    def reset_password(self, dto: PasswordResetIn) -> AccountOut:
        """
        Set a new password from a reset token, clear lockout, revoke sessions.

        :raises AuthError: ``MALFORMED`` for an unknown token, ``EXPIRED`` past its window.
        """
        collector = ViolationCollector()
        check_password(collector, dto.new_password)
        collector.raise_if_any()
        new_hash = self.credentials.hash(dto.new_password)
        now = self.now_utc()

        with self.storage_errors(), self.rw_uow() as uow:
            dreamer = uow.dreamers.get_by_reset_digest(self.credentials.digest(dto.token))
            if dreamer is None:
                raise AuthError(AuthFailure.MALFORMED)
            if dreamer.password_reset_expires is None or dreamer.password_reset_expires <= now:
                raise AuthError(AuthFailure.EXPIRED)
            dreamer.password_hash = new_hash
            dreamer.password_reset_token = None
            dreamer.password_reset_expires = None
            dreamer.failed_login_attempts = 0
            dreamer.lock_until = None
            uow.dreamers.flush()
            uow.dreamers.bump_token_version(dreamer.id)
            out = dreamer_to_out(dreamer)

        log.info(
            "account.password_reset",
            extra={"event": "account.password_reset", "dreamer_id": out.id},
        )
        return out

    # ------------------------------------------------------------------ #
    # Email verification
    # ------------------------------------------------------------------ #

    def request_email_verification(self, dreamer_id: int) -> VerificationTicketOut:
        """
        Issue a single-use verification token.

        :raises ConflictError: When the email is already verified.
        """
        now = self.now_utc()
        token = self.credentials.generate_opaque_token()
        with self.storage_errors(), self.rw_uow() as uow:
            dreamer = uow.dreamers.get(dreamer_id)
            if dreamer is None:
                raise NotFoundError("Dreamer", dreamer_id)
            if dreamer.is_email_verified:
                raise ConflictError("Dreamer", "Email already verified")
            dreamer.email_verification_token = token.digest
            dreamer.email_verification_expires = now + self.policy.verification_ttl
            return VerificationTicketOut(
                dreamer_id=dreamer.id,
                email=dreamer.email,
                plain_token=token.plain,
                expires_at=dreamer.email_verification_expires,
            )

    def verify_email(self, token: str) -> AccountOut:
        """
        Confirm the email address owning ``token``.

        :raises AuthError: ``MALFORMED`` for an unknown token, ``EXPIRED`` past its window.
        """
        now = self.now_utc()
        with self.storage_errors(), self.rw_uow() as uow:
            dreamer = uow.dreamers.get_by_verification_digest(self.credentials.digest(token))
            if dreamer is None:
                raise AuthError(AuthFailure.MALFORMED)
            if (
                dreamer.email_verification_expires is None
                or dreamer.email_verification_expires <= now
            ):
                raise AuthError(AuthFailure.EXPIRED)
            dreamer.is_email_verified = True
            dreamer.email_verification_token = None
            dreamer.email_verification_expires = None
            uow.dreamers.flush()
            out = dreamer_to_out(dreamer)
        log.info(
            "account.email_verified",
            extra={"event": "account.email_verified", "dreamer_id": out.id},
        )
        return out
