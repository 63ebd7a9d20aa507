"""Flask CLI commands for intro session maintenance."""

from __future__ import annotations

import logging

import click
from flask.cli import with_appcontext

from dreamshepherd.api.deps import intro_service, upgrade_service
from dreamshepherd.services.intro.dto import IntroSessionOut

LOGGER = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    """Raise logging verbosity for the intro services when requested."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.getLogger("dreamshepherd.services.intro").setLevel(level)
    LOGGER.setLevel(level)


def _echo_reminder(session: IntroSessionOut) -> None:
    """Default delivery: print the reminder target (email transport is not wired here)."""
    click.echo(f"  reminder  session={session.id}  url={session.return_url}")


@click.group("intro")
@click.option("--verbose", is_flag=True, help="Enable verbose logging.")
def intro_cli(verbose: bool) -> None:
    """Intro session maintenance commands."""
    _configure_logging(verbose)


@intro_cli.command("reminders")
@with_appcontext
def reminders_command() -> None:
    """Dispatch every due reminder and mark it sent."""
    result = intro_service().dispatch_due_reminders(_echo_reminder)
    click.echo(f"Reminders: due={result.due} sent={result.sent} failed={result.failed}")


@intro_cli.command("cleanup")
@with_appcontext
def cleanup_command() -> None:
    """Abandon reminders that are overdue by more than the grace period."""
    count = intro_service().cleanup_missed_reminders()
    click.echo(f"Missed reminders cleaned: {count}")


@intro_cli.command("purge")
@with_appcontext
def purge_command() -> None:
    """Physically remove expired intro sessions."""
    count = intro_service().purge_expired()
    click.echo(f"Expired intro sessions purged: {count}")


@intro_cli.command("stats")
@click.option("--days", default=30, show_default=True, type=click.IntRange(min=1))
@with_appcontext
def stats_command(days: int) -> None:
    """Print intro → account conversion numbers."""
    stats = upgrade_service().get_conversion_stats(days)
    click.echo(f"Conversion over {stats.period_days} days:")
    click.echo(f"  intro sessions   {stats.intro_sessions_created}")
    click.echo(f"  upgrades         {stats.upgrades_completed}")
    click.echo(f"  conversion rate  {stats.conversion_rate:.2f}%")
    click.echo(f"  pending          {stats.pending_upgrades}")


@intro_cli.command("candidates")
@click.option("--days-old", default=3, show_default=True, type=click.IntRange(min=0))
@with_appcontext
def candidates_command(days_old: int) -> None:
    """List active sessions older than DAYS_OLD that were never shown the upgrade prompt."""
    candidates = upgrade_service().get_upgrade_candidates(days_old)
    click.echo(f"Upgrade candidates: {len(candidates)}")
    for session in candidates:
        click.echo(f"  session={session.id}  created={session.created_at.isoformat()}")
