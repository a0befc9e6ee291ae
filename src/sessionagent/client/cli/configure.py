"""Configure command for SessionAgent CLI.

Commands:
- configure: Save collector / cart endpoints and timings
"""

from __future__ import annotations

import sys

import click

from sessionagent.client.cli.config import get_config_file, load_config, save_config
from sessionagent.core.config import AgentConfig


@click.command()
@click.option("--collector-url", help="Endpoint receiving session reports.")
@click.option("--cart-url", help="Storefront cart endpoint (omit for no cart tracking).")
@click.option("--cooldown", type=float, help="Seconds between two notifications.")
@click.option("--ping-interval", type=float, help="Seconds between periodic pings.")
@click.option("--display-timeout", type=float, help="Seconds a notification stays on screen.")
def configure(
    collector_url: str | None,
    cart_url: str | None,
    cooldown: float | None,
    ping_interval: float | None,
    display_timeout: float | None,
) -> None:
    """Save agent settings to the config file.

    Only the options given are changed.
    """
    config = load_config()
    updates = {
        "collector_url": collector_url,
        "cart_url": cart_url,
        "cooldown": cooldown,
        "ping_interval": ping_interval,
        "display_timeout": display_timeout,
    }
    config.update({k: v for k, v in updates.items() if v is not None})

    try:
        agent_config = AgentConfig.from_mapping(config)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    save_config({k: v for k, v in agent_config.to_dict().items() if v is not None})
    click.echo(f"Configuration saved to {get_config_file()}")
    click.echo(f"Collector: {agent_config.collector_url}")
    click.echo(f"Cart: {agent_config.cart_url or '(none)'}")
