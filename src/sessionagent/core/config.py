"""Agent configuration.

This module defines the configuration shared by the agent runtime,
its HTTP clients and the CLI.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any


@dataclass
class AgentConfig:
    """Configuration for a session agent.

    Attributes:
        collector_url: Endpoint receiving session reports (POST).
        cart_url: Cart endpoint (GET). No cart source when None.
        cooldown: Minimum seconds between two notifications.
        ping_interval: Seconds between periodic pings.
        path_poll_interval: Seconds between current-path checks.
        settle_delay: Seconds to wait after navigation before reporting.
        add_to_cart_delay: Seconds to wait for the cart to update after
            an add-to-cart interaction.
        display_timeout: Seconds before a shown notification removes itself.
        timeout: Transport timeout in seconds (None keeps the HTTP
            client's default).
    """

    collector_url: str
    cart_url: str | None = None
    cooldown: float = 30.0
    ping_interval: float = 30.0
    path_poll_interval: float = 1.0
    settle_delay: float = 0.5
    add_to_cart_delay: float = 1.0
    display_timeout: float = 10.0
    timeout: float | None = None

    def __post_init__(self) -> None:
        """Normalize URLs."""
        self.collector_url = self.collector_url.rstrip("/")
        if self.cart_url:
            self.cart_url = self.cart_url.rstrip("/")
        else:
            self.cart_url = None

    @property
    def cooldown_ms(self) -> int:
        return int(self.cooldown * 1000)

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> AgentConfig:
        """Build a config from a JSON-compatible mapping.

        Unknown keys are ignored and numeric values given as strings are
        coerced, so a hand-edited config file still loads.

        Raises:
            ValueError: If collector_url is missing or a number is invalid.
        """
        if not data.get("collector_url"):
            raise ValueError("collector_url is required")

        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            if key not in known or value is None:
                continue
            if key in ("collector_url", "cart_url"):
                kwargs[key] = str(value)
            else:
                try:
                    kwargs[key] = float(value)
                except (TypeError, ValueError) as e:
                    raise ValueError(f"Invalid value for {key}: {value!r}") from e
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}
