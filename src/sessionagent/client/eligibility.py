"""Notification eligibility state machine.

This module provides:
- EligibilityPhase: Derived phase (IDLE, COOLING, VISIBLE)
- EligibilityStateMachine: Persisted cooldown + visibility state deciding
  whether a notification may be shown for a trigger reason

Phases:
    IDLE     --show-->            VISIBLE   (last_shown_at = now, visible)
    VISIBLE  --dismiss/timeout--> COOLING   (not visible, last_shown_at kept)
    COOLING  --cooldown elapses-> IDLE      (computed on read, no write)

add_to_cart bypasses both gates: an explicit purchase-intent signal is
never suppressed. Because a show for add_to_cart still goes through
mark_shown(), it restarts the cooldown seen by every other reason.

Every show and hide goes through this class so the persisted
popup_visible flag stays equal to "a notification is on screen".
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum, auto
from typing import Any

from sessionagent.client.notifications import NotificationPresenter
from sessionagent.client.state import KeyValueStore
from sessionagent.core.types import TriggerReason, now_ms

logger = logging.getLogger(__name__)

LAST_SHOWN_KEY = "last_shown_at"
VISIBLE_KEY = "popup_visible"


class EligibilityPhase(Enum):
    """Derived eligibility phase."""

    IDLE = auto()  # Nothing shown, cooldown expired
    COOLING = auto()  # Nothing shown, cooldown active
    VISIBLE = auto()  # Notification currently shown


class EligibilityStateMachine:
    """Decides whether a notification may be shown and tracks visibility."""

    def __init__(
        self,
        store: KeyValueStore,
        presenter: NotificationPresenter,
        cooldown: float = 30.0,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        """Initialize the state machine.

        Args:
            store: Durable storage holding last_shown_at / popup_visible.
            presenter: Presenter rendering notifications.
            cooldown: Minimum seconds between two notifications.
            clock: Returns the current time in epoch milliseconds.
        """
        self._store = store
        self._presenter = presenter
        self._cooldown_ms = int(cooldown * 1000)
        self._clock = clock
        self._handle: Any = None

    # === Persisted fields ===

    @property
    def last_shown_at(self) -> int:
        """Epoch milliseconds of the last show (0 if never or unreadable)."""
        value = self._store.get(LAST_SHOWN_KEY)
        try:
            return int(float(value)) if value else 0
        except ValueError:
            logger.debug("Ignoring unreadable %s=%r", LAST_SHOWN_KEY, value)
            return 0

    @property
    def popup_visible(self) -> bool:
        return self._store.get(VISIBLE_KEY) == "1"

    @property
    def handle(self) -> Any:
        """Presenter handle of the notification on screen, if any."""
        return self._handle

    @property
    def state(self) -> EligibilityPhase:
        if self.popup_visible:
            return EligibilityPhase.VISIBLE
        if self._cooling():
            return EligibilityPhase.COOLING
        return EligibilityPhase.IDLE

    def _cooling(self) -> bool:
        return self._clock() - self.last_shown_at <= self._cooldown_ms

    # === Query ===

    def can_show(self, reason: str) -> bool:
        """Check whether a notification may be shown for a trigger reason.

        Reads state only; never writes.
        """
        if reason == TriggerReason.ADD_TO_CART:
            return True
        return not self.popup_visible and not self._cooling()

    # === Mutators ===

    def mark_shown(self) -> None:
        self._store.set(LAST_SHOWN_KEY, str(self._clock()))
        self._store.set(VISIBLE_KEY, "1")

    def clear_visible(self) -> None:
        self._store.set(VISIBLE_KEY, "0")

    def clear_all(self) -> None:
        """Remove the notification on screen (if any) and clear visibility."""
        handle, self._handle = self._handle, None
        try:
            if handle is not None:
                self._presenter.dismiss(handle)
                logger.debug("Preempted notification %s", handle)
        finally:
            self.clear_visible()

    def show(self, message: str) -> Any:
        """Show a message, recording it before it is rendered.

        A notification already on screen is removed first so at most one
        is ever attached.

        Returns:
            The presenter handle, or None if the presenter failed.
        """
        if self._handle is not None:
            self.clear_all()

        self.mark_shown()
        try:
            self._handle = self._presenter.display(message)
        except Exception:
            logger.exception("Notification presenter failed")
            self.clear_visible()
            return None
        logger.info("Showing notification %s", self._handle)
        return self._handle

    def dismiss(self, handle: Any) -> bool:
        """Dismiss a notification (manual close or display timeout).

        Returns:
            True if handle was the notification on screen. A stale handle
            (already preempted or closed) is ignored.
        """
        if handle is None or handle != self._handle:
            return False
        self._handle = None
        try:
            self._presenter.dismiss(handle)
        finally:
            self.clear_visible()
        logger.debug("Dismissed notification %s", handle)
        return True

    def reconcile(self) -> None:
        """Drop a persisted visible flag with no notification attached.

        After a restart nothing is on screen, whatever the store says.
        """
        if self._handle is None and self.popup_visible:
            logger.debug("Clearing stale popup_visible flag")
            self.clear_visible()
