"""Session agent and trigger pipeline.

The SessionAgent owns everything one visit needs (session clock, event
buffer, cart differ, eligibility state) and runs the trigger pipeline:

    eligibility gate -> cart fetch + diff -> navigation event
    -> buffer drain -> payload -> collector -> eligibility re-check -> show

Collaborators (collector, cart source, store, presenter) are injected so
the agent runs the same against a real storefront or test fakes.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Protocol

from sessionagent.client.api import CartFetchError, SyncTransportError
from sessionagent.client.buffer import EventBuffer
from sessionagent.client.cart import CartDiffer
from sessionagent.client.eligibility import EligibilityStateMachine
from sessionagent.client.notifications import NotificationPresenter
from sessionagent.client.session import ROOT_PATH, Session
from sessionagent.client.state import KeyValueStore
from sessionagent.core.config import AgentConfig
from sessionagent.core.types import (
    CartSnapshot,
    EventType,
    SessionEvent,
    SessionPayload,
    SyncResponse,
    TriggerReason,
    now_ms,
)

logger = logging.getLogger(__name__)

# Reasons that also record the event of the same name
_REASON_EVENTS = {
    TriggerReason.PAGE_VIEW: EventType.PAGE_VIEW,
    TriggerReason.HOME_WELCOME: EventType.HOME_WELCOME,
    TriggerReason.INTERVAL_PING: EventType.INTERVAL_PING,
}


class CartSource(Protocol):
    """Read-only access to the current cart."""

    async def fetch_cart(self) -> CartSnapshot: ...


class SessionSender(Protocol):
    """Delivers a session payload and returns the collector answer."""

    async def send(self, payload: SessionPayload) -> SyncResponse: ...


class SessionAgent:
    """Session state and trigger pipeline for one visit."""

    def __init__(
        self,
        config: AgentConfig,
        collector: SessionSender,
        store: KeyValueStore,
        presenter: NotificationPresenter,
        cart_source: CartSource | None = None,
        initial_path: str = ROOT_PATH,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        """Initialize the agent.

        Args:
            config: Agent configuration.
            collector: Session report sender.
            store: Durable key-value store for eligibility state.
            presenter: Notification presenter.
            cart_source: Cart snapshot source (None when the host has none).
            initial_path: Path displayed when the agent starts.
            clock: Returns the current time in epoch milliseconds.
        """
        self._config = config
        self._collector = collector
        self._cart_source = cart_source
        self._clock = clock

        self.session = Session(start_time=clock(), current_path=initial_path)
        self.buffer = EventBuffer()
        self.differ = CartDiffer(self.buffer, clock=clock)
        self.eligibility = EligibilityStateMachine(
            store, presenter, cooldown=config.cooldown, clock=clock
        )

    @property
    def initial_reason(self) -> TriggerReason:
        """Reason for the first report of the visit."""
        if self.session.is_root:
            return TriggerReason.HOME_WELCOME
        return TriggerReason.PAGE_VIEW

    def start(self) -> None:
        """Bring persisted state in line with a fresh page."""
        self.eligibility.reconcile()

    # === Host events ===

    def navigate(self, path: str) -> bool:
        """Record the path now displayed.

        Returns:
            True if the path changed.
        """
        if path == self.session.current_path:
            return False
        logger.debug("Navigation %s -> %s", self.session.current_path, path)
        self.session.current_path = path
        return True

    def record_add_to_cart(self, variant_id: str | None = None) -> None:
        self.buffer.record(
            SessionEvent.create(
                EventType.ADD_TO_CART_CLICK, self._clock(), variant_id=variant_id
            )
        )

    def record_click(self, target: str) -> None:
        """Record a click on an element the host tagged as tracked."""
        self.buffer.record(
            SessionEvent.create(EventType.CLICK, self._clock(), target=target)
        )

    # === Eligibility ===

    def can_show(self, reason: str) -> bool:
        return self.eligibility.can_show(reason)

    def clear_all(self) -> None:
        self.eligibility.clear_all()

    def close_notification(self) -> bool:
        """Close the notification on screen (visitor clicked close)."""
        return self.eligibility.dismiss(self.eligibility.handle)

    # === Pipeline ===

    async def trigger(self, reason: str) -> bool:
        """Report the session and show the collector's message if allowed.

        An ineligible trigger returns before touching any state, so its
        buffered events wait for the next eligible one. Once drained,
        events are not re-buffered even if the report fails.

        Args:
            reason: Trigger reason.

        Returns:
            True if a notification was shown.
        """
        reason = TriggerReason(reason)
        if not self.eligibility.can_show(reason):
            logger.debug("Skipping %s trigger: not eligible", reason.value)
            return False

        snapshot = await self._fetch_cart()
        self.differ.apply(snapshot)

        event_type = _REASON_EVENTS.get(reason)
        if event_type is not None:
            self.buffer.record(
                SessionEvent.create(
                    event_type, self._clock(), path=self.session.current_path
                )
            )

        payload = self._build_payload(reason, snapshot or CartSnapshot.empty())

        try:
            response = await self._collector.send(payload)
        except SyncTransportError as e:
            logger.warning(
                "Session report (%s) failed, %d events dropped: %s",
                reason.value,
                len(payload.events),
                e,
            )
            return False

        if not response.should_display:
            logger.debug("Collector declined notification for %s", reason.value)
            return False

        # Re-check right before showing: another trigger may have shown
        # while this one was waiting on the network.
        if not self.eligibility.can_show(reason):
            logger.debug("Suppressing %s notification: no longer eligible", reason.value)
            return False

        handle = self.eligibility.show(response.message or "")
        if handle is None:
            return False
        self._schedule_auto_dismiss(handle)
        return True

    async def _fetch_cart(self) -> CartSnapshot | None:
        if self._cart_source is None:
            return None
        try:
            return await self._cart_source.fetch_cart()
        except CartFetchError as e:
            logger.warning("Cart fetch failed, keeping baseline %d: %s", self.differ.baseline, e)
            return None

    def _build_payload(self, reason: TriggerReason, snapshot: CartSnapshot) -> SessionPayload:
        now = self._clock()
        return SessionPayload(
            time_on_site=self.session.time_on_site(now),
            current_page=self.session.current_path,
            cart_items=snapshot.items,
            current_cart_count=snapshot.item_count,
            events=tuple(self.buffer.drain_all()),
            trigger_reason=reason.value,
        )

    def _schedule_auto_dismiss(self, handle: Any) -> None:
        if self._config.display_timeout <= 0:
            return
        asyncio.get_running_loop().call_later(
            self._config.display_timeout, self.eligibility.dismiss, handle
        )
