"""
IntroSessionService
===================

Lifecycle of the anonymous intro session (IntroDreamer):

- Capture is an upsert keyed by email: a returning visitor updates the same
  session, gets its reminder re-armed and its expiry pushed back.
- An email that already belongs to an account is refused (log in instead).
- Maintenance sweeps deliver due reminders, abandon long-missed ones and
  reap expired records.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import timedelta

from dreamshepherd.repositories.dreamer import normalize_email
from dreamshepherd.services._shared.base import BaseService
from dreamshepherd.services._shared.errors import DuplicateEmailError, NotFoundError
from dreamshepherd.services._shared.ports.session_store import (
    IntroSessionStore,
    SessionDraft,
    SessionRecord,
)
from dreamshepherd.services._shared.validation import (
    ViolationCollector,
    check_dream,
    check_email,
)
from dreamshepherd.services.intro.dto import (
    UNSET,
    IntroCaptureIn,
    IntroCaptureOut,
    IntroPolicy,
    IntroSessionOut,
    IntroUpdateIn,
    ReminderSweepOut,
)

log = logging.getLogger(__name__)


def build_return_url(base_url: str, token: str) -> str:
    """Link that lets the client resume the intro session."""
    return f"{base_url.rstrip('/')}/dream/continue?token={token}"


class IntroSessionService(BaseService):
    """
    Orchestrates intro session capture, edits and maintenance sweeps.
    """

    def __init__(self, *, store: IntroSessionStore, policy: IntroPolicy | None = None) -> None:
        """
        :param store: Session record store (Redis or in-memory).
        :param policy: TTL, reminder and link settings.
        """
        super().__init__()
        self.store = store
        self.policy = policy or IntroPolicy()

    # ------------------------------------------------------------------ #
    # Capture / read / update
    # ------------------------------------------------------------------ #

    def capture(self, dto: IntroCaptureIn) -> IntroCaptureOut:
        """
        Create the intro session, or refresh the live one with the same email.

        :param dto: Capture input.
        :returns: Session view and whether a new record was created.
        :raises ValidationError: With every violated rule.
        :raises DuplicateEmailError: When an account already owns the email.
        """
        now = self.now_utc()
        collector = ViolationCollector()
        check_email(collector, dto.email, required=False)
        check_dream(
            collector,
            title=dto.title,
            vision=dto.vision,
            reminder_at=dto.reminder_at,
            now=now,
        )
        collector.raise_if_any()

        email = normalize_email(dto.email) if dto.email else None
        reminder_at = dto.reminder_at or now + timedelta(days=self.policy.default_reminder_days)
        title = dto.title.strip()

        with self.storage_errors():
            if email is not None:
                with self.ro_uow() as uow:
                    if uow.dreamers.exists_by_email(email):
                        raise DuplicateEmailError()

                existing = self.store.find_by_email(email)
                if existing is not None:
                    existing.title = title
                    existing.vision = dto.vision
                    existing.reschedule_reminder(reminder_at)
                    if dto.intro_completed_at is not None:
                        existing.intro_completed_at = dto.intro_completed_at
                    existing.touch(now)
                    existing.extend(now, self.policy.ttl_days)
                    if self.store.save(existing):
                        return IntroCaptureOut(session=self._to_out(existing), created=False)

            record = self.store.create(
                SessionDraft(
                    title=title,
                    vision=dto.vision,
                    email=email,
                    reminder_at=reminder_at,
                    intro_completed_at=dto.intro_completed_at or now,
                )
            )
        log.info("intro.captured", extra={"event": "intro.captured"})
        return IntroCaptureOut(session=self._to_out(record), created=True)

    def get(self, token: str) -> IntroSessionOut:
        """
        Return the live session for ``token`` and record the visit.

        :raises NotFoundError: When the token is unknown or expired.
        """
        with self.storage_errors():
            record = self._require(token)
            record.touch(self.now_utc())
            self.store.save(record)
        return self._to_out(record)

    def update(self, token: str, dto: IntroUpdateIn) -> IntroSessionOut:
        """
        Apply a partial update. Changing the reminder re-arms delivery.

        :raises NotFoundError: When the token is unknown or expired.
        :raises ValidationError: With every violated rule.
        """
        now = self.now_utc()
        collector = ViolationCollector()
        check_dream(
            collector,
            title=None if dto.title is UNSET else dto.title,
            vision=None if dto.vision is UNSET else dto.vision,
            reminder_at=None if dto.reminder_at is UNSET else dto.reminder_at,
            now=now,
            title_required=False,
        )
        collector.raise_if_any()

        with self.storage_errors():
            record = self._require(token)
            if dto.title is not UNSET:
                record.title = dto.title.strip()
            if dto.vision is not UNSET:
                record.vision = dto.vision
            if dto.reminder_at is not UNSET:
                record.reschedule_reminder(dto.reminder_at)
            record.touch(now)
            if not self.store.save(record):
                raise NotFoundError("IntroSession", "token")
        return self._to_out(record)

    # ------------------------------------------------------------------ #
    # Maintenance sweeps
    # ------------------------------------------------------------------ #

    def find_due_reminders(self) -> list[IntroSessionOut]:
        """Sessions whose reminder time has come and that were not reminded yet."""
        now = self.now_utc()
        with self.storage_errors():
            records = self.store.iter_records()
        return [self._to_out(r) for r in records if r.is_reminder_due(now)]

    def dispatch_due_reminders(
        self, deliver: Callable[[IntroSessionOut], None]
    ) -> ReminderSweepOut:
        """
        Hand every due reminder to ``deliver`` and mark the delivered ones sent.

        A failing delivery is logged and retried on the next sweep.

        :param deliver: Delivery callback (email transport lives outside this service).
        :returns: Due/sent/failed counters.
        """
        now = self.now_utc()
        sent = failed = 0
        with self.storage_errors():
            due = [r for r in self.store.iter_records() if r.is_reminder_due(now)]
            for record in due:
                try:
                    deliver(self._to_out(record))
                except Exception:
                    failed += 1
                    log.exception(
                        "intro.reminder_failed", extra={"event": "intro.reminder_failed"}
                    )
                    continue
                record.mark_reminder_sent(now)
                self.store.save(record)
                sent += 1
        return ReminderSweepOut(due=len(due), sent=sent, failed=failed)

    def cleanup_missed_reminders(self) -> int:
        """
        Mark reminders overdue by more than the grace period as sent.

        :returns: Number of abandoned reminders.
        """
        now = self.now_utc()
        cutoff = now - self.policy.missed_reminder_grace
        count = 0
        with self.storage_errors():
            for record in self.store.iter_records():
                if (
                    record.reminder_at is not None
                    and not record.reminder_sent
                    and record.reminder_at <= cutoff
                ):
                    record.mark_reminder_sent(now)
                    self.store.save(record)
                    count += 1
        if count:
            log.info(
                "intro.missed_reminders_cleaned",
                extra={"event": "intro.missed_reminders_cleaned", "reason": str(count)},
            )
        return count

    def purge_expired(self) -> int:
        """Physically remove expired records (no-op for TTL-backed stores)."""
        with self.storage_errors():
            return self.store.purge_expired()

    # ------------------------------------------------------------------ #
    # Mapping
    # ------------------------------------------------------------------ #

    def _require(self, token: str) -> SessionRecord:
        record = self.store.find_by_token(token)
        if record is None:
            raise NotFoundError("IntroSession", "token")
        return record

    def _to_out(self, record: SessionRecord) -> IntroSessionOut:
        return to_intro_out(record, self.policy.client_base_url)


def to_intro_out(record: SessionRecord, client_base_url: str) -> IntroSessionOut:
    """Map a :class:`SessionRecord` to :class:`IntroSessionOut`."""
    return IntroSessionOut(
        id=record.id,
        token=record.token,
        email=record.email,
        title=record.title,
        vision=record.vision,
        reminder_at=record.reminder_at,
        reminder_sent=record.reminder_sent,
        intro_completed_at=record.intro_completed_at,
        created_at=record.created_at,
        last_active_at=record.last_active_at,
        expires_at=record.expires_at,
        upgrade_prompt_shown=record.upgrade_prompt_shown,
        return_url=build_return_url(client_base_url, record.token),
    )
