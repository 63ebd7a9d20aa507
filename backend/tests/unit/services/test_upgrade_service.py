"""Unit tests for UpgradeService: intro session → account conversion and reporting."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from freezegun import freeze_time
from sqlalchemy import func, select

from dreamshepherd.api import deps
from dreamshepherd.core.extensions import get_credential_store
from dreamshepherd.models.dreamer import Dreamer
from dreamshepherd.services._shared.errors import (
    DuplicateEmailError,
    NotFoundError,
    ValidationError,
)
from dreamshepherd.services._shared.ports import InMemoryIntroSessionStore, SessionStoreError
from dreamshepherd.services.auth.dto import TokenKind
from dreamshepherd.services.intro.dto import IntroCaptureIn
from dreamshepherd.services.intro.service import IntroSessionService
from dreamshepherd.services.upgrade.dto import UpgradeIn
from dreamshepherd.services.upgrade.service import UpgradeService
from tests.factories.dreamer import DreamerFactory

T0 = datetime.now(UTC).replace(microsecond=0)


class FlakyDeleteStore(InMemoryIntroSessionStore):
    """In-memory store whose ``delete`` fails a configurable number of times."""

    def delete(self, token: str) -> None:
        if self.failures_left > 0:
            self.failures_left -= 1
            raise SessionStoreError("connection reset")
        super().delete(token)


@pytest.fixture()
def intro() -> IntroSessionService:
    return deps.intro_service()


@pytest.fixture()
def service() -> UpgradeService:
    return deps.upgrade_service()


def _accounts_with_email(session, email: str) -> int:
    stmt = select(func.count(Dreamer.id)).where(Dreamer.email == email)
    return session.execute(stmt).scalar_one()


def _flaky_pair(failures: int) -> tuple[IntroSessionService, UpgradeService]:
    store = FlakyDeleteStore()
    store.failures_left = failures
    intro = IntroSessionService(store=store, policy=deps.intro_policy())
    upgrade = UpgradeService(
        store=store,
        credentials=get_credential_store(),
        tokens=deps.token_service(),
        intro_policy=deps.intro_policy(),
        delete_attempts=3,
    )
    return intro, upgrade


class TestUpgrade:
    def test_happy_path(self, intro, service):
        with freeze_time(T0 - timedelta(days=2)):
            captured = intro.capture(
                IntroCaptureIn(title="Open a bakery", vision="Sourdough", email="Baker@Example.com")
            ).session

        with freeze_time(T0):
            result = service.upgrade(
                UpgradeIn(
                    token=captured.token,
                    password="knead-the-dough",
                    first_name="Bea",
                    theme="dark",
                )
            )

        account = result.account
        assert account.email == "baker@example.com"
        assert account.display_name == "Bea"
        assert account.onboarding_completed is True
        assert account.dream_count == 1
        assert account.preferences.theme == "dark"
        assert account.journey_started_at == T0
        assert account.provenance.intro_id == captured.id
        assert account.provenance.original_created_at == captured.created_at
        assert account.provenance.upgraded_at == T0

        assert result.dream.title == "Open a bakery"
        assert result.dream.vision == "Sourdough"
        assert result.dream.slug == "open-a-bakery"
        assert result.dream.created_at == captured.created_at

        payload = deps.token_service().verify(result.tokens.access_token, TokenKind.ACCESS)
        assert payload.dreamer_id == account.id

        with pytest.raises(NotFoundError):
            intro.get(captured.token)
        assert [d.title for d in deps.account_service().list_dreams(account.id)] == [
            "Open a bakery"
        ]

    def test_learn_guitar_scenario(self, intro, service):
        with freeze_time(T0 - timedelta(days=1)):
            captured = intro.capture(IntroCaptureIn(title="Learn guitar", email="a@b.com")).session

        result = service.upgrade(UpgradeIn(token=captured.token, password="longenough1"))

        assert result.account.email == "a@b.com"
        assert result.account.dream_count == 1
        assert result.dream.title == "Learn guitar"
        assert result.dream.created_at == T0 - timedelta(days=1)
        with pytest.raises(NotFoundError):
            intro.get(captured.token)
        tokens = deps.token_service()
        assert tokens.verify(result.tokens.access_token, TokenKind.ACCESS).dreamer_id == (
            result.account.id
        )
        assert tokens.verify(result.tokens.refresh_token, TokenKind.REFRESH).dreamer_id == (
            result.account.id
        )

    def test_session_email_wins_over_request_email(self, intro, service):
        captured = intro.capture(IntroCaptureIn(title="Fly", email="pilot@example.com")).session
        result = service.upgrade(
            UpgradeIn(token=captured.token, password="long-enough", email="other@example.com")
        )
        assert result.account.email == "pilot@example.com"

    def test_request_email_used_when_session_has_none(self, intro, service):
        captured = intro.capture(IntroCaptureIn(title="Fly")).session
        result = service.upgrade(
            UpgradeIn(token=captured.token, password="long-enough", email="Late@Example.com")
        )
        assert result.account.email == "late@example.com"

    def test_email_required_when_session_has_none(self, intro, service):
        captured = intro.capture(IntroCaptureIn(title="Fly")).session
        with pytest.raises(ValidationError) as exc:
            service.upgrade(UpgradeIn(token=captured.token, password="short", theme="neon"))
        assert set(exc.value.as_dict()) == {"email", "password", "theme"}
        # Nothing was consumed
        assert intro.get(captured.token).title == "Fly"

    def test_unknown_token(self, service):
        with pytest.raises(NotFoundError):
            service.upgrade(UpgradeIn(token="e" * 64, password="long-enough"))

    def test_email_already_registered(self, intro, service):
        captured = intro.capture(IntroCaptureIn(title="Sing", email="singer@example.com")).session
        DreamerFactory(email="singer@example.com")
        with pytest.raises(DuplicateEmailError):
            service.upgrade(UpgradeIn(token=captured.token, password="long-enough"))
        assert intro.get(captured.token).email == "singer@example.com"

    def test_concurrent_upgrades_have_one_winner(self, intro, service, session, monkeypatch):
        captured = intro.capture(IntroCaptureIn(title="Race", email="racer@example.com")).session
        check_email_free = UpgradeService._ensure_email_free
        winners = []

        def rival_upgrades_first(self, email):
            check_email_free(self, email)
            if not winners:
                winners.append(None)
                winners[0] = service.upgrade(
                    UpgradeIn(token=captured.token, password="winner-password")
                )

        monkeypatch.setattr(UpgradeService, "_ensure_email_free", rival_upgrades_first)

        with pytest.raises(DuplicateEmailError):
            service.upgrade(UpgradeIn(token=captured.token, password="loser-password"))

        winner = winners[0]
        assert winner.account.email == "racer@example.com"
        payload = deps.token_service().verify(winner.tokens.refresh_token, TokenKind.REFRESH)
        assert payload.dreamer_id == winner.account.id
        assert _accounts_with_email(session, "racer@example.com") == 1

    def test_account_created_after_pre_check_surfaces_duplicate(
        self, intro, service, session, monkeypatch
    ):
        captured = intro.capture(IntroCaptureIn(title="Race", email="late@example.com")).session
        check_email_free = UpgradeService._ensure_email_free

        def account_appears_meanwhile(self, email):
            check_email_free(self, email)
            DreamerFactory(email=email)

        monkeypatch.setattr(UpgradeService, "_ensure_email_free", account_appears_meanwhile)

        with pytest.raises(DuplicateEmailError):
            service.upgrade(UpgradeIn(token=captured.token, password="long-enough"))

        assert _accounts_with_email(session, "late@example.com") == 1
        assert intro.get(captured.token).email == "late@example.com"

    def test_session_discard_is_retried(self):
        intro, service = _flaky_pair(failures=2)
        captured = intro.capture(IntroCaptureIn(title="Row", email="rower@example.com")).session
        service.upgrade(UpgradeIn(token=captured.token, password="long-enough"))
        with pytest.raises(NotFoundError):
            intro.get(captured.token)

    def test_stale_session_after_discard_failure_cannot_upgrade_twice(self):
        intro, service = _flaky_pair(failures=10)
        captured = intro.capture(IntroCaptureIn(title="Row", email="rower@example.com")).session

        result = service.upgrade(UpgradeIn(token=captured.token, password="long-enough"))
        assert result.account.email == "rower@example.com"
        assert intro.get(captured.token).token == captured.token  # left behind

        with pytest.raises(DuplicateEmailError):
            service.upgrade(UpgradeIn(token=captured.token, password="long-enough"))


class TestPreviewAndPrompt:
    def test_preview_has_no_side_effects(self, intro, service):
        captured = intro.capture(IntroCaptureIn(title="Knit", email="knit@example.com")).session
        preview = service.get_upgrade_preview(captured.token)
        assert preview.can_upgrade is True
        assert preview.email_already_registered is False
        assert preview.session.token == captured.token

        DreamerFactory(email="knit@example.com")
        preview = service.get_upgrade_preview(captured.token)
        assert preview.can_upgrade is False
        assert preview.email_already_registered is True

    def test_preview_unknown_token(self, service):
        with pytest.raises(NotFoundError):
            service.get_upgrade_preview("d" * 64)

    def test_mark_prompt_shown(self, intro, service):
        captured = intro.capture(IntroCaptureIn(title="Knit")).session
        service.mark_upgrade_prompt_shown(captured.token)
        service.mark_upgrade_prompt_shown("c" * 64)  # ignored
        assert intro.get(captured.token).upgrade_prompt_shown is True


class TestReporting:
    def test_candidates(self, intro, service):
        with freeze_time(T0 - timedelta(days=4)):
            old_active = intro.capture(IntroCaptureIn(title="Old active")).session
            intro.capture(IntroCaptureIn(title="Old idle"))
        with freeze_time(T0 - timedelta(hours=1)):
            intro.get(old_active.token)
            intro.capture(IntroCaptureIn(title="Brand new"))

        with freeze_time(T0):
            candidates = service.get_upgrade_candidates(days_old=3)
            assert [c.token for c in candidates] == [old_active.token]

            service.mark_upgrade_prompt_shown(old_active.token)
            assert service.get_upgrade_candidates(days_old=3) == []

    def test_conversion_stats(self, intro, service):
        sessions = [
            intro.capture(IntroCaptureIn(title=f"Dream {i}", email=f"s{i}@example.com")).session
            for i in range(3)
        ]
        service.upgrade(UpgradeIn(token=sessions[0].token, password="long-enough"))
        service.mark_upgrade_prompt_shown(sessions[1].token)

        stats = service.get_conversion_stats(days=30)
        assert stats.period_days == 30
        assert stats.upgrades_completed == 1
        assert stats.intro_sessions_created == 3
        assert stats.conversion_rate == 33.33
        assert stats.pending_upgrades == 1

    def test_conversion_stats_empty(self, service):
        stats = service.get_conversion_stats(days=7)
        assert stats.intro_sessions_created == 0
        assert stats.conversion_rate == 0.0
