"""
``flask sync`` commands for running the feed reconciliation from a scheduler.
"""

from __future__ import annotations

import json

import click
from flask import current_app
from flask.cli import with_appcontext

from tracker_app.errors import TrackerError
from tracker_app.extension import get_services


def _emit(payload: object) -> None:
    click.echo(json.dumps(payload, indent=2, sort_keys=True))


@click.group(name="sync")
def sync_cli():
    """Reconcile the external events feed with the remote lists."""


@sync_cli.command("sessions")
@with_appcontext
def sync_sessions_command():
    """Create sessions for new events in linked series."""
    try:
        result = get_services().reconciler.reconcile_sessions()
    except TrackerError as exc:
        current_app.logger.error("Session sync failed: %s", exc.message)
        raise click.ClickException(exc.message) from exc
    _emit(result.to_dict())


@sync_cli.command("attendees")
@with_appcontext
def sync_attendees_command():
    """Register attendees of today's and future linked sessions."""
    try:
        result = get_services().reconciler.reconcile_attendees()
    except TrackerError as exc:
        current_app.logger.error("Attendee sync failed: %s", exc.message)
        raise click.ClickException(exc.message) from exc
    _emit(result.to_dict())


@sync_cli.command("all")
@with_appcontext
def sync_all_command():
    """Run session sync followed by attendee sync."""
    try:
        result = get_services().reconciler.reconcile_all()
    except TrackerError as exc:
        current_app.logger.error("Feed sync failed: %s", exc.message)
        raise click.ClickException(exc.message) from exc
    _emit(result)


@sync_cli.command("check-config")
@click.option("--limit", type=int, default=5, show_default=True, help="Number of upcoming events to inspect.")
@with_appcontext
def check_config_command(limit: int):
    """Report child tickets and consent questions on upcoming events."""
    feed = get_services().feed
    if not hasattr(feed, "check_configuration"):
        raise click.ClickException("The configured events feed does not support configuration checks.")
    try:
        checks = feed.check_configuration(limit=limit)
    except TrackerError as exc:
        raise click.ClickException(exc.message) from exc
    _emit([check.to_dict() for check in checks])
