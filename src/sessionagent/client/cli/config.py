"""Configuration utilities for SessionAgent CLI.

This module provides shared configuration functions used across CLI commands.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from sessionagent.core.config import AgentConfig


def get_config_dir() -> Path:
    """Get the configuration directory for SessionAgent.

    Returns:
        Path to ~/.sessionagent or equivalent.
    """
    return Path.home() / ".sessionagent"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def get_state_db_path() -> Path:
    """Get the path to the persisted eligibility state."""
    return get_config_dir() / "state.db"


def load_config() -> dict[str, Any]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, Any]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def get_agent_config() -> AgentConfig:
    """Build the agent configuration from the config file.

    Raises:
        ValueError: If the file lacks a collector URL or holds invalid values.
    """
    return AgentConfig.from_mapping(load_config())
