"""Tests for the ``flask intro`` maintenance commands."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from freezegun import freeze_time

from dreamshepherd.api import deps
from dreamshepherd.services.intro.dto import IntroCaptureIn


@pytest.fixture()
def runner(app):
    return app.test_cli_runner()


def _capture(**kwargs):
    return deps.intro_service().capture(IntroCaptureIn(**kwargs)).session


def test_reminders_are_dispatched_once(runner):
    now = datetime.now(UTC)
    session = _capture(title="Learn piano", reminder_at=now + timedelta(hours=1))

    with freeze_time(now + timedelta(hours=2)):
        result = runner.invoke(args=["intro", "reminders"])
        assert result.exit_code == 0, result.output
        assert "Reminders: due=1 sent=1 failed=0" in result.output
        assert session.id in result.output

        again = runner.invoke(args=["intro", "reminders"])
        assert "Reminders: due=0 sent=0 failed=0" in again.output


def test_cleanup_abandons_stale_reminders(runner):
    now = datetime.now(UTC)
    _capture(title="Learn piano", reminder_at=now + timedelta(hours=1))

    with freeze_time(now + timedelta(days=3)):
        result = runner.invoke(args=["intro", "cleanup"])
    assert result.exit_code == 0, result.output
    assert "Missed reminders cleaned: 1" in result.output


def test_purge_removes_expired_sessions(runner):
    now = datetime.now(UTC)
    _capture(title="Old dream")

    with freeze_time(now + timedelta(days=31)):
        result = runner.invoke(args=["intro", "purge"])
    assert result.exit_code == 0, result.output
    assert "Expired intro sessions purged: 1" in result.output


def test_stats_and_candidates(runner):
    _capture(title="Fresh dream")

    stats = runner.invoke(args=["intro", "stats", "--days", "7"])
    assert stats.exit_code == 0, stats.output
    assert "Conversion over 7 days:" in stats.output
    assert "conversion rate  0.00%" in stats.output

    candidates = runner.invoke(args=["intro", "candidates"])
    assert candidates.exit_code == 0, candidates.output
    assert "Upgrade candidates: 0" in candidates.output


def test_stats_rejects_non_positive_days(runner):
    result = runner.invoke(args=["intro", "stats", "--days", "0"])
    assert result.exit_code != 0
