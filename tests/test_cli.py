"""Tests for CLI commands - configure, run, status, reset."""

import json
import time
from collections.abc import Iterator
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from sessionagent.client.cli import cli
from sessionagent.client.state import LocalStateStore

COLLECTOR_URL = "http://collector/track-session"
CART_URL = "http://shop/cart.js"


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def config_dir(tmp_path: Path) -> Iterator[Path]:
    """Point the CLI at a temporary config directory."""
    with patch("sessionagent.client.cli.config.get_config_dir", return_value=tmp_path):
        yield tmp_path


def write_config(config_dir: Path, **values: object) -> None:
    (config_dir / "config.json").write_text(json.dumps(values))


class TestConfigureCommand:
    """Tests for 'sessionagent configure'."""

    def test_saves_config(self, runner: CliRunner, config_dir: Path) -> None:
        """Should write the given settings to config.json."""
        result = runner.invoke(
            cli,
            ["configure", "--collector-url", COLLECTOR_URL + "/", "--cart-url", CART_URL, "--cooldown", "60"],
        )

        assert result.exit_code == 0
        saved = json.loads((config_dir / "config.json").read_text())
        assert saved["collector_url"] == COLLECTOR_URL
        assert saved["cart_url"] == CART_URL
        assert saved["cooldown"] == 60.0

    def test_updates_only_given_options(self, runner: CliRunner, config_dir: Path) -> None:
        """Should keep settings not passed on the command line."""
        write_config(config_dir, collector_url=COLLECTOR_URL, cart_url=CART_URL)

        result = runner.invoke(cli, ["configure", "--ping-interval", "15"])

        assert result.exit_code == 0
        saved = json.loads((config_dir / "config.json").read_text())
        assert saved["cart_url"] == CART_URL
        assert saved["ping_interval"] == 15.0

    def test_requires_collector_url(self, runner: CliRunner, config_dir: Path) -> None:
        """Should fail when no collector URL is known."""
        result = runner.invoke(cli, ["configure", "--cart-url", CART_URL])

        assert result.exit_code == 1
        assert "collector_url" in result.output
        assert not (config_dir / "config.json").exists()


class TestRunCommand:
    """Tests for 'sessionagent run'."""

    def test_fails_when_not_configured(self, runner: CliRunner, config_dir: Path) -> None:
        result = runner.invoke(cli, ["run"], input="quit\n")

        assert result.exit_code == 1
        assert "configure" in result.output

    def test_initial_load_shows_notification(
        self, runner: CliRunner, config_dir: Path, httpx_mock  # type: ignore[no-untyped-def]
    ) -> None:
        """The first report should be home_welcome and its message displayed."""
        write_config(config_dir, collector_url=COLLECTOR_URL, cart_url=CART_URL)
        httpx_mock.add_response(url=CART_URL, method="GET", json={"items": []})
        httpx_mock.add_response(
            url=COLLECTOR_URL, method="POST", json={"show": True, "message": "Welcome back!"}
        )

        result = runner.invoke(cli, ["run"], input="dance\nquit\n")

        assert result.exit_code == 0, result.output
        assert "[notification #1] Welcome back!" in result.output
        assert "Unknown command: dance" in result.output
        body = json.loads(httpx_mock.get_request(url=COLLECTOR_URL).content)
        assert body["trigger_reason"] == "home_welcome"
        assert body["cart_items"] == []
        assert body["current_cart_count"] == 0

        with LocalStateStore(config_dir / "state.db") as store:
            assert store.get("popup_visible") == "1"


class TestStatusCommand:
    """Tests for 'sessionagent status'."""

    def test_no_state(self, runner: CliRunner, config_dir: Path) -> None:
        result = runner.invoke(cli, ["status"])

        assert result.exit_code == 0
        assert "No state recorded yet" in result.output

    def test_cooling(self, runner: CliRunner, config_dir: Path) -> None:
        """A recent dismissed notification should report the cooling phase."""
        with LocalStateStore(config_dir / "state.db") as store:
            store.set("last_shown_at", str(int(time.time() * 1000)))
            store.set("popup_visible", "0")

        result = runner.invoke(cli, ["status"])

        assert result.exit_code == 0
        assert "Phase: cooling" in result.output
        assert "Popup visible: no" in result.output


class TestResetCommand:
    """Tests for 'sessionagent reset'."""

    def test_reset_clears_state(self, runner: CliRunner, config_dir: Path) -> None:
        with LocalStateStore(config_dir / "state.db") as store:
            store.set("last_shown_at", str(int(time.time() * 1000)))
            store.set("popup_visible", "1")

        result = runner.invoke(cli, ["reset", "--yes"])

        assert result.exit_code == 0
        with LocalStateStore(config_dir / "state.db") as store:
            assert store.get("last_shown_at") is None
            assert store.get("popup_visible") is None

    def test_reset_without_state(self, runner: CliRunner, config_dir: Path) -> None:
        result = runner.invoke(cli, ["reset", "--yes"])

        assert result.exit_code == 0
        assert "Nothing to reset" in result.output
