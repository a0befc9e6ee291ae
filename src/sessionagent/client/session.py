"""Per-run session bookkeeping (start time and current path)."""

from __future__ import annotations

from dataclasses import dataclass

ROOT_PATH = "/"


@dataclass
class Session:
    """One visit: created at agent start, never persisted.

    Attributes:
        start_time: Epoch milliseconds when the agent started.
        current_path: Path of the page currently displayed.
    """

    start_time: int
    current_path: str = ROOT_PATH

    def time_on_site(self, now: int) -> int:
        """Whole seconds elapsed since start_time."""
        return max(0, (now - self.start_time) // 1000)

    @property
    def is_root(self) -> bool:
        return self.current_path == ROOT_PATH
