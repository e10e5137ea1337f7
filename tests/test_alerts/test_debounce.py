"""Tests for DebounceController — window suppression, shared state, fail-closed."""

from __future__ import annotations

from src.alerts.debounce import DebounceController
from src.store.base import MemoryStateStore


class _Clock:
    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _controller(clock: _Clock, store: MemoryStateStore | None = None, window: float = 300.0):
    return DebounceController(store or MemoryStateStore("debounce"), window_secs=window, clock=clock)


class TestDebounce:
    async def test_first_alert_allowed(self) -> None:
        ctl = _controller(_Clock())
        assert await ctl.can_send("cpu") is True

    async def test_repeat_within_window_denied(self) -> None:
        clock = _Clock()
        ctl = _controller(clock)
        assert await ctl.can_send("cpu") is True
        clock.now += 299
        decision = await ctl.check("cpu")
        assert decision.allowed is False
        assert decision.remaining_secs == 1.0
        assert decision.lock_timeout is False

    async def test_allowed_again_after_window(self) -> None:
        clock = _Clock()
        ctl = _controller(clock)
        assert await ctl.can_send("cpu") is True
        clock.now += 300
        assert await ctl.can_send("cpu") is True

    async def test_denial_does_not_extend_window(self) -> None:
        clock = _Clock()
        ctl = _controller(clock)
        await ctl.can_send("cpu")
        clock.now += 200
        assert await ctl.can_send("cpu") is False
        clock.now += 100
        assert await ctl.can_send("cpu") is True

    async def test_keys_independent(self) -> None:
        ctl = _controller(_Clock())
        assert await ctl.can_send("cpu") is True
        assert await ctl.can_send("disk") is True
        assert await ctl.can_send("cpu") is False

    async def test_state_shared_through_store(self) -> None:
        clock = _Clock()
        store = MemoryStateStore("debounce")
        first = _controller(clock, store)
        second = _controller(clock, store)
        assert await first.can_send("disk") is True
        assert await second.can_send("disk") is False

    async def test_corrupt_timestamp_treated_as_never_sent(self) -> None:
        store = MemoryStateStore("debounce", initial={"cpu": "yesterday"})
        ctl = _controller(_Clock(), store)
        assert await ctl.can_send("cpu") is True

    async def test_lock_timeout_denies(self) -> None:
        store = MemoryStateStore("debounce")
        ctl = DebounceController(store, lock_timeout_secs=0.01, clock=_Clock())
        async with store.transaction():
            decision = await ctl.check("cpu")
        assert decision.allowed is False
        assert decision.lock_timeout is True
        # Nothing was recorded, so the next check goes through.
        assert await ctl.can_send("cpu") is True

    async def test_reset(self) -> None:
        ctl = _controller(_Clock())
        await ctl.can_send("cpu")
        await ctl.can_send("disk")
        await ctl.reset("cpu")
        assert await ctl.can_send("cpu") is True
        assert await ctl.can_send("disk") is False
        await ctl.reset()
        assert await ctl.can_send("disk") is True
