"""Tests for gridcalc.calc DebounceScheduler."""

from __future__ import annotations

import asyncio

import pytest
from gridcalc.calc._debounce import DebounceScheduler


def _drain(loop: asyncio.AbstractEventLoop, seconds: float = 0.15) -> None:
    loop.run_until_complete(asyncio.sleep(seconds))


class TestSchedule:
    def test_fires_after_delay(self, loop: asyncio.AbstractEventLoop) -> None:
        calls: list[str] = []
        s = DebounceScheduler(loop)
        s.schedule("k", lambda: calls.append("k"), 10)
        assert calls == []
        assert s.pending("k")
        _drain(loop)
        assert calls == ["k"]
        assert not s.pending("k")

    def test_burst_coalesces(self, loop: asyncio.AbstractEventLoop) -> None:
        calls: list[int] = []
        s = DebounceScheduler(loop)
        for i in range(10):
            s.schedule("k", lambda i=i: calls.append(i), 20)
        assert len(s) == 1
        _drain(loop)
        assert calls == [9]

    def test_keys_are_independent(self, loop: asyncio.AbstractEventLoop) -> None:
        calls: list[str] = []
        s = DebounceScheduler(loop)
        s.schedule("a", lambda: calls.append("a"), 10)
        s.schedule("b", lambda: calls.append("b"), 10)
        _drain(loop)
        assert sorted(calls) == ["a", "b"]

    def test_callback_can_reschedule_itself(self, loop: asyncio.AbstractEventLoop) -> None:
        calls: list[int] = []
        s = DebounceScheduler(loop)

        def tick() -> None:
            calls.append(len(calls))
            if len(calls) < 3:
                s.schedule("tick", tick, 5)

        s.schedule("tick", tick, 5)
        _drain(loop, 0.2)
        assert calls == [0, 1, 2]

    def test_failing_callback_is_logged(
        self, loop: asyncio.AbstractEventLoop, caplog: pytest.LogCaptureFixture,
    ) -> None:
        s = DebounceScheduler(loop)
        s.schedule("bad", lambda: 1 / 0, 5)
        _drain(loop, 0.05)
        assert "bad" in caplog.text
        assert not s.pending("bad")

    def test_not_callable(self, loop: asyncio.AbstractEventLoop) -> None:
        s = DebounceScheduler(loop)
        with pytest.raises(TypeError, match="not callable"):
            s.schedule("k", "nope", 10)  # type: ignore[arg-type]

    def test_entry_records_schedule_time(self, loop: asyncio.AbstractEventLoop) -> None:
        s = DebounceScheduler(loop)
        before = loop.time()
        s.schedule("k", lambda: None, 10)
        entry = s.entry("k")
        assert entry is not None
        assert entry.key == "k"
        assert entry.scheduled_at >= before


class TestCancel:
    def test_cancel_pending(self, loop: asyncio.AbstractEventLoop) -> None:
        calls: list[str] = []
        s = DebounceScheduler(loop)
        s.schedule("k", lambda: calls.append("k"), 10)
        assert s.cancel("k") is True
        _drain(loop)
        assert calls == []

    def test_cancel_missing(self, loop: asyncio.AbstractEventLoop) -> None:
        assert DebounceScheduler(loop).cancel("nope") is False

    def test_clear(self, loop: asyncio.AbstractEventLoop) -> None:
        calls: list[str] = []
        s = DebounceScheduler(loop)
        s.schedule("a", lambda: calls.append("a"), 10)
        s.schedule("b", lambda: calls.append("b"), 10)
        s.clear()
        assert s.pending_keys == []
        _drain(loop)
        assert calls == []


class TestRunIfChanged:
    def test_first_value_counts_as_change(self, loop: asyncio.AbstractEventLoop) -> None:
        seen: list[tuple[object, object]] = []
        s = DebounceScheduler(loop)
        assert s.run_if_changed("qty", 3, lambda new, old: seen.append((new, old)), 10)
        _drain(loop)
        assert seen == [(3, None)]

    def test_unchanged_value_is_skipped(self, loop: asyncio.AbstractEventLoop) -> None:
        seen: list[object] = []
        s = DebounceScheduler(loop)
        s.run_if_changed("qty", 3, lambda new, old: seen.append(new), 10)
        _drain(loop)
        assert s.run_if_changed("qty", "3", lambda new, old: seen.append(new), 10) is False
        _drain(loop)
        assert seen == [3]

    def test_changed_value_reports_previous(self, loop: asyncio.AbstractEventLoop) -> None:
        seen: list[tuple[object, object]] = []
        s = DebounceScheduler(loop)
        s.run_if_changed("qty", 3, lambda new, old: None, 10)
        assert s.run_if_changed("qty", 4, lambda new, old: seen.append((new, old)), 10)
        assert s.pending("change_qty")
        _drain(loop)
        assert seen == [(4, 3)]

    def test_clear_forgets_values(self, loop: asyncio.AbstractEventLoop) -> None:
        s = DebounceScheduler(loop)
        s.run_if_changed("qty", 3, lambda new, old: None, 10)
        s.clear()
        assert s.run_if_changed("qty", 3, lambda new, old: None, 10) is True


class TestLoopResolution:
    def test_uses_running_loop(self) -> None:
        calls: list[str] = []

        async def main() -> None:
            s = DebounceScheduler()
            s.schedule("k", lambda: calls.append("k"), 5)
            await asyncio.sleep(0.05)

        asyncio.run(main())
        assert calls == ["k"]

    def test_no_loop_raises(self) -> None:
        with pytest.raises(RuntimeError):
            DebounceScheduler().schedule("k", lambda: None, 5)
