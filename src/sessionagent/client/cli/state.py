"""Eligibility state commands for SessionAgent CLI.

Commands:
- status: Show the persisted notification eligibility state
- reset: Clear the persisted notification eligibility state
"""

from __future__ import annotations

from datetime import datetime

import click

from sessionagent.client.cli.config import get_agent_config, get_state_db_path
from sessionagent.client.eligibility import (
    LAST_SHOWN_KEY,
    VISIBLE_KEY,
    EligibilityStateMachine,
)
from sessionagent.client.notifications import ConsolePresenter
from sessionagent.client.state import LocalStateStore


def _cooldown() -> float:
    try:
        return get_agent_config().cooldown
    except ValueError:
        return 30.0


@click.command()
def status() -> None:
    """Show notification eligibility state."""
    db_path = get_state_db_path()
    if not db_path.exists():
        click.echo("No state recorded yet.")
        return

    with LocalStateStore(db_path) as store:
        machine = EligibilityStateMachine(store, ConsolePresenter(), cooldown=_cooldown())
        last_shown = machine.last_shown_at
        click.echo(f"Phase: {machine.state.name.lower()}")
        if last_shown:
            when = datetime.fromtimestamp(last_shown / 1000).isoformat(timespec="seconds")
            click.echo(f"Last shown: {when}")
        else:
            click.echo("Last shown: never")
        click.echo(f"Popup visible: {'yes' if machine.popup_visible else 'no'}")


@click.command()
@click.confirmation_option(prompt="Clear notification cooldown and visibility state?")
def reset() -> None:
    """Clear notification eligibility state."""
    db_path = get_state_db_path()
    if not db_path.exists():
        click.echo("Nothing to reset.")
        return

    with LocalStateStore(db_path) as store:
        store.delete(LAST_SHOWN_KEY)
        store.delete(VISIBLE_KEY)
    click.echo("Eligibility state cleared.")
