"""Shared types for sessionagent.

This module defines the records exchanged between the agent components
and the wire shapes sent to / received from the collector.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


def now_ms() -> int:
    """Current wall-clock time as integer epoch milliseconds."""
    return int(time.time() * 1000)


class TriggerReason(str, Enum):
    """Why a session report is being sent."""

    PAGE_VIEW = "page_view"
    HOME_WELCOME = "home_welcome"
    ADD_TO_CART = "add_to_cart"
    INTERVAL_PING = "interval_ping"
    CART_CHANGE = "cart_change"


class EventType(str, Enum):
    """Type of a buffered session event."""

    PAGE_VIEW = "page_view"
    HOME_WELCOME = "home_welcome"
    CART_CHANGE = "cart_change"
    ADD_TO_CART_CLICK = "add_to_cart_click"
    INTERVAL_PING = "interval_ping"
    CLICK = "click"  # Element tagged as tracked by the host page


@dataclass(frozen=True)
class SessionEvent:
    """A discrete session event waiting for the next flush.

    Attributes:
        type: The type of event.
        timestamp: Epoch milliseconds when the event was created.
        data: Type-specific fields (delta, variant_id, path, target).
    """

    type: EventType
    timestamp: int
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        event_type: EventType,
        timestamp: int | None = None,
        **data: Any,
    ) -> SessionEvent:
        """Create an event, dropping fields whose value is None."""
        return cls(
            type=event_type,
            timestamp=now_ms() if timestamp is None else timestamp,
            data={k: v for k, v in data.items() if v is not None},
        )

    def to_dict(self) -> dict[str, Any]:
        """Flatten into the wire representation."""
        return {"type": self.type.value, "timestamp": self.timestamp, **self.data}


@dataclass(frozen=True)
class CartItem:
    """One cart line as reported to the collector."""

    title: str
    quantity: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CartItem:
        """Create from a cart API line item."""
        return cls(
            title=str(data.get("title") or ""),
            quantity=int(data.get("quantity") or 0),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"title": self.title, "quantity": self.quantity}


@dataclass(frozen=True)
class CartSnapshot:
    """Cart contents at one point in time."""

    item_count: int
    items: tuple[CartItem, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CartSnapshot:
        """Create from a cart API response.

        An explicit ``item_count`` wins; otherwise line quantities are summed.

        Raises:
            ValueError: If ``items`` is not a list of objects.
        """
        raw_items = data.get("items") or []
        if not isinstance(raw_items, list) or not all(isinstance(i, dict) for i in raw_items):
            raise ValueError("Cart items must be a list of objects")
        items = tuple(CartItem.from_dict(i) for i in raw_items)
        if data.get("item_count") is not None:
            item_count = int(data["item_count"])
        else:
            item_count = sum(i.quantity for i in items)
        return cls(item_count=item_count, items=items)

    @classmethod
    def empty(cls) -> CartSnapshot:
        return cls(item_count=0)


@dataclass(frozen=True)
class SessionPayload:
    """The record sent to the collector for one trigger."""

    time_on_site: int
    current_page: str
    cart_items: tuple[CartItem, ...]
    current_cart_count: int
    events: tuple[SessionEvent, ...]
    trigger_reason: str

    def to_dict(self) -> dict[str, Any]:
        """Build the JSON body."""
        return {
            "time_on_site": self.time_on_site,
            "current_page": self.current_page,
            "cart_items": [i.to_dict() for i in self.cart_items],
            "current_cart_count": self.current_cart_count,
            "events": [e.to_dict() for e in self.events],
            "trigger_reason": self.trigger_reason,
        }


@dataclass(frozen=True)
class SyncResponse:
    """Collector answer to a session report."""

    show: bool = False
    message: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> SyncResponse:
        """Parse a response body.

        Anything that is not an object, or lacks the fields, means
        "no notification".
        """
        if not isinstance(data, dict):
            return cls()
        message = data.get("message")
        return cls(
            show=bool(data.get("show")),
            message=message if isinstance(message, str) else None,
        )

    @property
    def should_display(self) -> bool:
        """True when the collector asked for a non-empty message."""
        return self.show and bool(self.message)
