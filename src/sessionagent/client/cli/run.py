"""Run command for SessionAgent CLI.

Commands:
- run: Run an agent whose host page is driven by stdin commands

Page commands (one per line):
    goto <path>       navigate to a path
    add [variant]     add-to-cart interaction, optional variant id
    click <target>    click on a tracked element
    close             close the notification on screen
    quit              end the visit
"""

from __future__ import annotations

import asyncio
import logging
import sys
from dataclasses import dataclass

import click

from sessionagent.client.agent import SessionAgent
from sessionagent.client.api import CartClient, CollectorClient
from sessionagent.client.cli.config import get_agent_config, get_state_db_path
from sessionagent.client.notifications import (
    ConsolePresenter,
    NotificationPresenter,
    SystemPresenter,
)
from sessionagent.client.scheduler import SyncScheduler
from sessionagent.client.state import LocalStateStore
from sessionagent.core.config import AgentConfig


@dataclass
class HostPage:
    """The page the simulated visitor is on."""

    path: str


def _setup_logging(verbose: bool) -> None:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter("[%(asctime)s] [%(levelname)s] %(message)s", "%Y-%m-%d %H:%M:%S")
    )
    agent_logger = logging.getLogger("sessionagent")
    agent_logger.handlers = [handler]
    agent_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


async def _handle_command(
    line: str,
    page: HostPage,
    agent: SessionAgent,
    scheduler: SyncScheduler,
) -> bool:
    """Apply one page command.

    Returns:
        False when the visit is over.
    """
    parts = line.split(maxsplit=1)
    if not parts:
        return True
    command, arg = parts[0].lower(), (parts[1].strip() if len(parts) > 1 else None)

    if command in ("quit", "exit"):
        return False
    if command == "goto" and arg:
        page.path = arg
        await scheduler.check_path()
    elif command == "add":
        scheduler.on_add_to_cart(arg)
    elif command == "click" and arg:
        agent.record_click(arg)
    elif command == "close":
        if not agent.close_notification():
            click.echo("No notification to close.", err=True)
    else:
        click.echo(f"Unknown command: {line.strip()}", err=True)
    return True


async def _run_session(
    config: AgentConfig,
    presenter: NotificationPresenter,
    initial_path: str,
) -> None:
    page = HostPage(path=initial_path)
    cart = CartClient(config.cart_url, config.timeout) if config.cart_url else None

    with LocalStateStore(get_state_db_path()) as store:
        async with CollectorClient(config) as collector:
            try:
                agent = SessionAgent(
                    config,
                    collector,
                    store,
                    presenter,
                    cart_source=cart,
                    initial_path=initial_path,
                )
                scheduler = SyncScheduler(agent, config, path_source=lambda: page.path)
                scheduler.start()

                loop = asyncio.get_running_loop()
                while True:
                    line = await loop.run_in_executor(None, sys.stdin.readline)
                    if not line:
                        break
                    if not await _handle_command(line, page, agent, scheduler):
                        break

                await scheduler.wait_idle()
                scheduler.stop()
            finally:
                if cart is not None:
                    await cart.aclose()


@click.command()
@click.option("--path", "initial_path", default="/", show_default=True, help="Path of the first page.")
@click.option("--system-notify", is_flag=True, help="Use native OS notifications.")
@click.option("--verbose", "-v", is_flag=True, help="Log every pipeline step.")
def run(initial_path: str, system_notify: bool, verbose: bool) -> None:
    """Run a session agent.

    Page events are read from stdin, one command per line:
    goto <path>, add [variant], click <target>, close, quit.
    """
    try:
        config = get_agent_config()
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        click.echo("Run 'sessionagent configure --collector-url <url>' first.", err=True)
        sys.exit(1)

    _setup_logging(verbose)
    presenter: NotificationPresenter = SystemPresenter() if system_notify else ConsolePresenter()

    try:
        asyncio.run(_run_session(config, presenter, initial_path))
    except KeyboardInterrupt:
        click.echo("\nSession ended.")
