"""Cart change detection.

This module provides:
- CartDiff: Result of comparing a snapshot with the baseline
- CartDiffer: Tracks the last known-good item count and emits
  cart_change events into the event buffer
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from sessionagent.client.buffer import EventBuffer
from sessionagent.core.types import CartSnapshot, EventType, SessionEvent, now_ms

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CartDiff:
    """Outcome of one cart comparison.

    Attributes:
        changed: True if the item count moved since the baseline.
        delta: new_count minus the baseline (0 when unchanged).
        new_count: Item count of the snapshot (0 when the fetch failed).
    """

    changed: bool
    delta: int
    new_count: int


class CartDiffer:
    """Compares successive cart snapshots against a baseline count.

    The baseline only moves on a successful fetch, so a transient
    failure never makes the next comparison run against zero.
    """

    def __init__(
        self,
        buffer: EventBuffer,
        previous_count: int = 0,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._buffer = buffer
        self._previous_count = previous_count
        self._clock = clock

    @property
    def baseline(self) -> int:
        """Last successfully observed cart item count."""
        return self._previous_count

    def apply(self, snapshot: CartSnapshot | None) -> CartDiff:
        """Compare a snapshot with the baseline.

        Args:
            snapshot: Fresh cart snapshot, or None if the fetch failed.

        Returns:
            The diff. On change, one cart_change event is recorded and
            the baseline advances.
        """
        if snapshot is None:
            return CartDiff(changed=False, delta=0, new_count=0)

        new_count = snapshot.item_count
        delta = new_count - self._previous_count
        if delta == 0:
            return CartDiff(changed=False, delta=0, new_count=new_count)

        self._buffer.record(
            SessionEvent.create(EventType.CART_CHANGE, self._clock(), delta=delta)
        )
        logger.debug("Cart changed: %d -> %d", self._previous_count, new_count)
        self._previous_count = new_count
        return CartDiff(changed=True, delta=delta, new_count=new_count)
