"""Tests for the notification eligibility state machine."""

from __future__ import annotations

import pytest

from sessionagent.client.eligibility import (
    LAST_SHOWN_KEY,
    VISIBLE_KEY,
    EligibilityPhase,
    EligibilityStateMachine,
)
from sessionagent.client.state import MemoryStore
from tests.client.fakes import FakeClock, FakePresenter

COOLDOWN_MS = 30_000


class StuckPresenter(FakePresenter):
    """Presenter whose notifications refuse to close."""

    def dismiss(self, handle: object) -> None:
        raise RuntimeError("element already detached")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def presenter() -> FakePresenter:
    return FakePresenter()


@pytest.fixture
def machine(store: MemoryStore, presenter: FakePresenter, clock: FakeClock) -> EligibilityStateMachine:
    return EligibilityStateMachine(store, presenter, cooldown=30.0, clock=clock)


class TestCanShow:
    """Tests for the can_show query."""

    def test_fresh_state_is_idle(self, machine: EligibilityStateMachine) -> None:
        """Nothing stored should allow every reason."""
        assert machine.state == EligibilityPhase.IDLE
        assert machine.can_show("page_view") is True
        assert machine.can_show("interval_ping") is True

    def test_add_to_cart_bypasses_visibility(self, machine: EligibilityStateMachine) -> None:
        """Right after mark_shown, only add_to_cart should be allowed."""
        machine.mark_shown()

        assert machine.can_show("add_to_cart") is True
        assert machine.can_show("interval_ping") is False

    def test_add_to_cart_bypasses_cooldown(
        self, machine: EligibilityStateMachine, clock: FakeClock
    ) -> None:
        """add_to_cart should be allowed while cooling."""
        machine.mark_shown()
        machine.clear_visible()
        clock.advance(1)

        assert machine.state == EligibilityPhase.COOLING
        assert machine.can_show("add_to_cart") is True
        assert machine.can_show("page_view") is False

    @pytest.mark.parametrize("elapsed", [1, 1_000, 29_999, 30_000])
    def test_cooldown_blocks_after_dismissal(
        self, machine: EligibilityStateMachine, clock: FakeClock, elapsed: int
    ) -> None:
        """Within the cooldown window a dismissed popup should still block."""
        machine.mark_shown()
        machine.clear_visible()
        clock.advance(elapsed)

        assert machine.can_show("page_view") is False

    def test_cooldown_expires(self, machine: EligibilityStateMachine, clock: FakeClock) -> None:
        """Past the window, a dismissed popup should no longer block."""
        machine.mark_shown()
        clock.advance(10)
        machine.clear_visible()
        clock.advance(COOLDOWN_MS - 10 + 1)

        assert machine.state == EligibilityPhase.IDLE
        assert machine.can_show("page_view") is True

    def test_visible_blocks_even_after_cooldown(
        self, machine: EligibilityStateMachine, clock: FakeClock
    ) -> None:
        """A popup still on screen should block regardless of elapsed time."""
        machine.mark_shown()
        clock.advance(COOLDOWN_MS * 10)

        assert machine.state == EligibilityPhase.VISIBLE
        assert machine.can_show("interval_ping") is False

    def test_can_show_never_writes(
        self, machine: EligibilityStateMachine, store: MemoryStore
    ) -> None:
        """Querying should leave storage untouched."""
        machine.can_show("page_view")
        machine.can_show("add_to_cart")

        assert store.get(LAST_SHOWN_KEY) is None
        assert store.get(VISIBLE_KEY) is None

    def test_unreadable_timestamp_treated_as_never(self, presenter: FakePresenter, clock: FakeClock) -> None:
        """A corrupt last_shown_at should not block notifications."""
        store = MemoryStore({LAST_SHOWN_KEY: "yesterday", VISIBLE_KEY: "0"})
        machine = EligibilityStateMachine(store, presenter, clock=clock)

        assert machine.last_shown_at == 0
        assert machine.can_show("page_view") is True

    def test_stale_values_from_previous_visit_apply(self, presenter: FakePresenter, clock: FakeClock) -> None:
        """A recent last_shown_at persisted by an earlier visit should still cool."""
        store = MemoryStore({LAST_SHOWN_KEY: str(clock.now - 5_000), VISIBLE_KEY: "0"})
        machine = EligibilityStateMachine(store, presenter, cooldown=30.0, clock=clock)

        assert machine.can_show("page_view") is False


class TestMutators:
    """Tests for mark_shown / clear_visible / clear_all."""

    def test_mark_shown_persists_strings(
        self, machine: EligibilityStateMachine, store: MemoryStore, clock: FakeClock
    ) -> None:
        """Should store the timestamp and the literal '1'."""
        machine.mark_shown()

        assert store.get(LAST_SHOWN_KEY) == str(clock.now)
        assert store.get(VISIBLE_KEY) == "1"

    def test_clear_visible_keeps_last_shown(
        self, machine: EligibilityStateMachine, store: MemoryStore, clock: FakeClock
    ) -> None:
        """Dismissal should only reset visibility."""
        machine.mark_shown()
        shown_at = clock.now
        clock.advance(500)

        machine.clear_visible()

        assert store.get(VISIBLE_KEY) == "0"
        assert machine.last_shown_at == shown_at

    def test_clear_all_removes_rendered_notification(
        self, machine: EligibilityStateMachine, presenter: FakePresenter
    ) -> None:
        """clear_all should dismiss what is on screen and reset visibility."""
        handle = machine.show("10% off")

        machine.clear_all()

        assert presenter.dismissed == [handle]
        assert machine.popup_visible is False
        assert machine.handle is None

    def test_clear_all_without_notification(
        self, machine: EligibilityStateMachine, presenter: FakePresenter
    ) -> None:
        """clear_all with nothing on screen should only reset visibility."""
        machine.clear_all()

        assert presenter.dismissed == []
        assert machine.popup_visible is False


class TestShowAndDismiss:
    """Tests for show / dismiss / reconcile."""

    def test_mark_shown_happens_before_display(
        self, store: MemoryStore, clock: FakeClock
    ) -> None:
        """At display time the state should already read visible and fresh."""
        observed: list[tuple[bool, bool]] = []
        machine: EligibilityStateMachine

        def on_display(message: str) -> None:
            observed.append((machine.popup_visible, machine.can_show("interval_ping")))

        machine = EligibilityStateMachine(store, FakePresenter(on_display), clock=clock)
        machine.show("10% off")

        assert observed == [(True, False)]
        assert machine.last_shown_at == clock.now

    def test_show_preempts_existing(
        self, machine: EligibilityStateMachine, presenter: FakePresenter
    ) -> None:
        """A second show should remove the first notification."""
        first = machine.show("hello")
        second = machine.show("added!")

        assert presenter.on_screen == [second]
        assert presenter.dismissed == [first]
        assert machine.popup_visible is True

    def test_dismiss_current(self, machine: EligibilityStateMachine, presenter: FakePresenter) -> None:
        """Dismissing the current handle should hide it and start cooling."""
        handle = machine.show("hello")

        assert machine.dismiss(handle) is True
        assert presenter.on_screen == []
        assert machine.state == EligibilityPhase.COOLING

    def test_dismiss_stale_handle_ignored(
        self, machine: EligibilityStateMachine, presenter: FakePresenter
    ) -> None:
        """A timeout for a preempted notification should not hide the new one."""
        first = machine.show("hello")
        second = machine.show("added!")

        assert machine.dismiss(first) is False
        assert machine.popup_visible is True
        assert machine.handle == second

    def test_presenter_failure_leaves_not_visible(self, store: MemoryStore, clock: FakeClock) -> None:
        """If rendering fails nothing is attached, so visibility must be cleared."""

        def boom(message: str) -> None:
            raise RuntimeError("no document body")

        machine = EligibilityStateMachine(store, FakePresenter(boom), clock=clock)

        assert machine.show("hello") is None
        assert machine.popup_visible is False

    def test_reconcile_clears_stale_visible_flag(self, presenter: FakePresenter, clock: FakeClock) -> None:
        """A visible flag left by a previous run should be cleared at start."""
        store = MemoryStore({LAST_SHOWN_KEY: str(clock.now - 1_000), VISIBLE_KEY: "1"})
        machine = EligibilityStateMachine(store, presenter, clock=clock)

        machine.reconcile()

        assert machine.popup_visible is False
        assert machine.last_shown_at == clock.now - 1_000

    def test_failed_dismiss_still_clears_visibility(self, store: MemoryStore, clock: FakeClock) -> None:
        """A presenter error on close should not leave the flag stuck on."""
        machine = EligibilityStateMachine(store, StuckPresenter(), clock=clock)
        handle = machine.show("hello")

        with pytest.raises(RuntimeError):
            machine.dismiss(handle)

        assert machine.popup_visible is False
        assert machine.handle is None
        assert store.get(VISIBLE_KEY) == "0"

    def test_failed_preemption_still_clears_visibility(self, store: MemoryStore, clock: FakeClock) -> None:
        """clear_all should release visibility even when removal fails."""
        machine = EligibilityStateMachine(store, StuckPresenter(), clock=clock)
        machine.show("hello")

        with pytest.raises(RuntimeError):
            machine.clear_all()

        assert machine.popup_visible is False
        assert machine.handle is None
