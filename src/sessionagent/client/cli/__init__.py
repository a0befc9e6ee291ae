"""Command-line interface for SessionAgent.

This module provides the main CLI entry point and assembles all commands.

Commands:
- configure: Save collector / cart endpoints and timings
- run: Run an agent driven by page events read from stdin
- status: Show the persisted notification eligibility state
- reset: Clear the persisted notification eligibility state
"""

from __future__ import annotations

import click

from sessionagent.client.cli.config import (
    get_agent_config,
    get_config_dir,
    get_config_file,
    get_state_db_path,
    load_config,
    save_config,
)
from sessionagent.client.cli.configure import configure
from sessionagent.client.cli.run import run
from sessionagent.client.cli.state import reset, status


@click.group()
@click.version_option(package_name="sessionagent")
def cli() -> None:
    """SessionAgent - storefront session tracking and notifications."""


cli.add_command(configure)
cli.add_command(run)
cli.add_command(status)
cli.add_command(reset)

__all__ = [
    "cli",
    "get_agent_config",
    "get_config_dir",
    "get_config_file",
    "get_state_db_path",
    "load_config",
    "save_config",
]
