"""Timers and host listeners driving the trigger pipeline.

This module provides:
- SyncScheduler: initial load, path-change watch, periodic ping and
  add-to-cart handling, all funneled through SessionAgent.trigger()

Each trigger runs as its own asyncio task. Tasks share nothing but the
agent's event buffer and eligibility state, and none is cancelled by a
later one: clear_all() only removes what is on screen.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from sessionagent.client.agent import SessionAgent
from sessionagent.client.session import ROOT_PATH
from sessionagent.core.config import AgentConfig
from sessionagent.core.types import TriggerReason

logger = logging.getLogger(__name__)


class SyncScheduler:
    """Owns all timers and listeners of a session agent.

    Usage:
        scheduler = SyncScheduler(agent, config, path_source=lambda: page.path)
        scheduler.start()          # inside a running event loop
        ...
        scheduler.on_add_to_cart("variant-42")
        ...
        await scheduler.wait_idle()
        scheduler.stop()
    """

    def __init__(
        self,
        agent: SessionAgent,
        config: AgentConfig,
        path_source: Callable[[], str] | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            agent: The agent whose pipeline is triggered.
            config: Agent configuration (intervals and delays).
            path_source: Returns the path currently displayed. The path
                watch is inert without one.
        """
        self._agent = agent
        self._config = config
        self._path_source = path_source
        self._scheduler: AsyncIOScheduler | None = None
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    @property
    def job_ids(self) -> list[str]:
        """Ids of the recurring jobs currently scheduled."""
        if self._scheduler is None:
            return []
        return [job.id for job in self._scheduler.get_jobs()]

    @property
    def pending(self) -> int:
        """Number of triggers in flight."""
        return len(self._tasks)

    def start(self) -> None:
        """Fire the initial load and start the recurring jobs.

        Must be called from within a running event loop.
        """
        if self._scheduler is not None:
            return  # Already running

        self._agent.start()
        self._spawn(
            self._agent.trigger(self._agent.initial_reason), name="initial_load"
        )

        self._scheduler = AsyncIOScheduler()

        if self._path_source is not None:
            self._scheduler.add_job(
                self.check_path,
                trigger=IntervalTrigger(seconds=self._config.path_poll_interval),
                id="path_watch",
                name="Path change watch",
                replace_existing=True,
            )

        self._scheduler.add_job(
            self.ping,
            trigger=IntervalTrigger(seconds=self._config.ping_interval),
            id="interval_ping",
            name="Periodic session ping",
            replace_existing=True,
        )

        self._scheduler.start()
        logger.info(
            "Session scheduler started (ping every %.0fs, path poll every %.1fs)",
            self._config.ping_interval,
            self._config.path_poll_interval,
        )

    def stop(self) -> None:
        """Stop the recurring jobs. In-flight triggers keep running."""
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            logger.info("Session scheduler stopped")

    async def wait_idle(self) -> None:
        """Wait until no trigger is in flight."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # === Jobs and listeners ===

    async def check_path(self) -> None:
        """Path watch job: report a navigation once the page settles."""
        if self._path_source is None:
            return
        path = self._path_source()
        if not self._agent.navigate(path):
            return
        if path == ROOT_PATH or not self._agent.can_show(TriggerReason.PAGE_VIEW):
            return
        self._spawn(
            self._delayed_trigger(self._config.settle_delay, TriggerReason.PAGE_VIEW),
            name="page_view",
        )

    async def ping(self) -> None:
        """Periodic job: ping only while a notification could be shown."""
        if not self._agent.can_show(TriggerReason.INTERVAL_PING):
            logger.debug("Skipping ping: notification visible or cooling")
            return
        self._spawn(self._agent.trigger(TriggerReason.INTERVAL_PING), name="interval_ping")

    def on_add_to_cart(self, variant_id: str | None = None) -> None:
        """Handle an add-to-cart interaction from the host page.

        The click is recorded at once; the report waits for the cart to
        update, then preempts whatever notification is on screen.
        """
        self._agent.record_add_to_cart(variant_id)
        self._spawn(self._add_to_cart_flow(), name="add_to_cart")

    # === Internals ===

    async def _add_to_cart_flow(self) -> None:
        await asyncio.sleep(self._config.add_to_cart_delay)
        self._agent.clear_all()
        await self._agent.trigger(TriggerReason.ADD_TO_CART)

    async def _delayed_trigger(self, delay: float, reason: TriggerReason) -> None:
        await asyncio.sleep(delay)
        await self._agent.trigger(reason)

    def _spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> None:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Trigger %s failed", task.get_name(), exc_info=exc)
