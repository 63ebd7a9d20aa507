"""
UpgradeService
==============

Turns an intro session into a permanent account:

1. Resolve the session by its bearer token.
2. Refuse when an account already owns the session's email.
3. Validate registration data, collecting every violation.
4-6. In one SQL transaction: create the Dreamer (provenance stamped), its
   first Dream (keeping the session's original creation time) and set
   ``dream_count`` to 1.
7. Discard the session record, retrying on store failures.
8. Reload the account and issue a token pair.

The session store and the database cannot share a transaction. Account and
dream commit first, so a crash can leave a stale session next to the new
account but never drop a session without an account; a stale session is
harmless because step 2 rejects it.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from sqlalchemy.exc import IntegrityError

from dreamshepherd.models.dream import Dream, slugify
from dreamshepherd.models.dreamer import EMAIL_UNIQUE_CONSTRAINT, Dreamer
from dreamshepherd.repositories.dreamer import normalize_email
from dreamshepherd.services._shared.base import BaseService
from dreamshepherd.services._shared.errors import (
    DuplicateEmailError,
    NotFoundError,
    violates,
)
from dreamshepherd.services._shared.ports.session_store import (
    IntroSessionStore,
    SessionRecord,
    SessionStoreError,
)
from dreamshepherd.services._shared.validation import (
    ViolationCollector,
    check_email,
    check_password,
    check_profile,
)
from dreamshepherd.services.accounts._converters import dream_to_out, dreamer_to_out
from dreamshepherd.services.auth.dto import TokenSubject
from dreamshepherd.services.auth.service import TokenService
from dreamshepherd.services.credentials.service import CredentialStore
from dreamshepherd.services.intro.dto import IntroPolicy, IntroSessionOut
from dreamshepherd.services.intro.service import to_intro_out
from dreamshepherd.services.upgrade.dto import (
    ConversionStatsOut,
    UpgradeIn,
    UpgradeOut,
    UpgradePreviewOut,
)

log = logging.getLogger(__name__)


class UpgradeService(BaseService):
    """
    Orchestrates the intro session → account upgrade and its reporting helpers.
    """

    def __init__(
        self,
        *,
        store: IntroSessionStore,
        credentials: CredentialStore,
        tokens: TokenService,
        intro_policy: IntroPolicy | None = None,
        delete_attempts: int = 3,
    ) -> None:
        """
        :param store: Intro session record store.
        :param credentials: Password hasher.
        :param tokens: Token issuer for the final pair.
        :param intro_policy: Used to build session views (return link).
        :param delete_attempts: Tries when discarding the upgraded session.
        """
        super().__init__()
        self.store = store
        self.credentials = credentials
        self.tokens = tokens
        self.intro_policy = intro_policy or IntroPolicy()
        self.delete_attempts = max(1, delete_attempts)

    # ------------------------------------------------------------------ #
    # Upgrade
    # ------------------------------------------------------------------ #

    def upgrade(self, dto: UpgradeIn) -> UpgradeOut:
        """
        Convert the intro session addressed by ``dto.token`` into an account.

        :param dto: Registration data plus the session bearer token.
        :returns: Account, first dream and token pair.
        :raises NotFoundError: Unknown or expired session.
        :raises DuplicateEmailError: The email already belongs to an account,
            including when a concurrent upgrade wins the race.
        :raises ValidationError: With every violated rule.
        """
        now = self.now_utc()
        record = self._require(dto.token)

        email = normalize_email(record.email or dto.email or "")
        if email:
            self._ensure_email_free(email)

        collector = ViolationCollector()
        if record.email is None:
            check_email(collector, dto.email, required=True)
        check_password(collector, dto.password)
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

        # Hash outside the transaction
        password_hash = self.credentials.hash(dto.password)

        with self.storage_errors():
            try:
                with self.rw_uow() as uow:
                    dreamer = Dreamer.from_intro_session(
                        record,
                        email=email,
                        password_hash=password_hash,
                        now=now,
                        first_name=dto.first_name,
                        last_name=dto.last_name,
                        display_name=dto.display_name,
                        theme=dto.theme,
                        animation_speed=dto.animation_speed,
                        shepherd_personality=dto.shepherd_personality,
                        notifications=dto.notifications,
                    )
                    uow.dreamers.add(dreamer)

                    dream = Dream(
                        dreamer_id=dreamer.id,
                        slug=slugify(record.title),
                        title=record.title,
                        vision=record.vision,
                        created_at=record.created_at,
                    )
                    uow.dreams.add(dream)

                    dreamer.dream_count = 1
                    uow.dreamers.flush()
                    dreamer_id = dreamer.id
                    dream_out = dream_to_out(dream)
            except IntegrityError as exc:
                if violates(exc, EMAIL_UNIQUE_CONSTRAINT, columns=("dreamers.email",)):
                    log.info(
                        "upgrade.duplicate_email",
                        extra={"event": "upgrade.duplicate_email", "reason": "race"},
                    )
                    raise DuplicateEmailError() from exc
                raise

        self._discard_session(record.token, dreamer_id)

        with self.storage_errors(), self.ro_uow() as uow:
            reloaded = uow.dreamers.get(dreamer_id)
            if reloaded is None:
                raise NotFoundError("Dreamer", dreamer_id)
            account = dreamer_to_out(reloaded)

        tokens = self.tokens.issue_pair(TokenSubject.from_account(account))
        log.info(
            "upgrade.completed",
            extra={"event": "upgrade.completed", "dreamer_id": account.id},
        )
        return UpgradeOut(account=account, dream=dream_out, tokens=tokens)

    def _discard_session(self, token: str, dreamer_id: int) -> bool:
        for attempt in range(1, self.delete_attempts + 1):
            try:
                self.store.delete(token)
                return True
            except SessionStoreError:
                log.warning(
                    "upgrade.session_discard_retry",
                    extra={
                        "event": "upgrade.session_discard_retry",
                        "dreamer_id": dreamer_id,
                        "reason": f"attempt {attempt}",
                    },
                )
        log.error(
            "upgrade.session_discard_failed",
            extra={"event": "upgrade.session_discard_failed", "dreamer_id": dreamer_id},
        )
        return False

    # ------------------------------------------------------------------ #
    # Preview / prompt
    # ------------------------------------------------------------------ #

    def get_upgrade_preview(self, token: str) -> UpgradePreviewOut:
        """
        Steps 1-2 without side effects, for UI gating.

        :raises NotFoundError: Unknown or expired session.
        """
        record = self._require(token)
        registered = False
        if record.email:
            with self.storage_errors(), self.ro_uow() as uow:
                registered = uow.dreamers.exists_by_email(record.email)
        return UpgradePreviewOut(
            session=self._to_out(record),
            email_already_registered=registered,
            can_upgrade=not registered,
        )

    def mark_upgrade_prompt_shown(self, token: str) -> None:
        """Flag the session as prompted; unknown tokens are ignored."""
        with self.storage_errors():
            record = self.store.find_by_token(token)
            if record is not None:
                record.upgrade_prompt_shown = True
                self.store.save(record)

    # ------------------------------------------------------------------ #
    # Reporting
    # ------------------------------------------------------------------ #

    def get_upgrade_candidates(self, days_old: int = 3) -> list[IntroSessionOut]:
        """
        Sessions older than ``days_old`` that are still active and were never prompted.
        """
        cutoff = self.now_utc() - timedelta(days=days_old)
        with self.storage_errors():
            records = self.store.iter_records()
        return [
            self._to_out(r)
            for r in records
            if r.created_at < cutoff
            and r.last_active_at is not None
            and r.last_active_at > cutoff
            and not r.upgrade_prompt_shown
        ]

    def get_conversion_stats(self, days: int = 30) -> ConversionStatsOut:
        """Funnel numbers over the trailing ``days``."""
        cutoff = self.now_utc() - timedelta(days=days)
        with self.storage_errors():
            recent = [r for r in self.store.iter_records() if r.created_at >= cutoff]
            with self.ro_uow() as uow:
                upgrades = uow.dreamers.count_upgraded_since(cutoff)

        created = len(recent) + upgrades
        rate = round(upgrades / created * 100, 2) if created else 0.0
        return ConversionStatsOut(
            period_days=days,
            intro_sessions_created=created,
            upgrades_completed=upgrades,
            conversion_rate=rate,
            pending_upgrades=sum(1 for r in recent if not r.upgrade_prompt_shown),
        )

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _require(self, token: str) -> SessionRecord:
        with self.storage_errors():
            record = self.store.find_by_token(token) if token else None
        if record is None:
            raise NotFoundError("IntroSession", "token")
        return record

    def _ensure_email_free(self, email: str) -> None:
        with self.storage_errors(), self.ro_uow() as uow:
            if uow.dreamers.exists_by_email(email):
                raise DuplicateEmailError()

    def _to_out(self, record: SessionRecord) -> IntroSessionOut:
        return to_intro_out(record, self.intro_policy.client_base_url)
