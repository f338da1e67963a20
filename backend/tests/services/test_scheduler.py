# backend/tests/services/test_scheduler.py
"""
Tests for the background refresh scheduler.

tick() is exercised directly; only one test runs the real thread.
"""

import threading

import pytest

from fintrack.services.scheduler import HandlerSlot, RefreshScheduler


class TestHandlerSlot:

    def test_empty_by_default(self):
        assert HandlerSlot().get() is None

    def test_set_and_get(self):
        slot = HandlerSlot()
        handler = lambda: None  # noqa: E731

        slot.set(handler)

        assert slot.get() is handler


class TestRefreshScheduler:

    def test_tick_without_handler(self):
        scheduler = RefreshScheduler(60.0)

        assert scheduler.tick() is False

    def test_tick_calls_current_handler(self):
        calls = []
        scheduler = RefreshScheduler(60.0, lambda: calls.append("first"))

        scheduler.tick()
        scheduler.set_handler(lambda: calls.append("second"))
        scheduler.tick()

        assert calls == ["first", "second"]

    def test_failing_handler_is_logged_not_raised(self, caplog):
        def broken():
            raise RuntimeError("price feed down")

        scheduler = RefreshScheduler(60.0, broken)

        assert scheduler.tick() is True
        assert "handler failed" in caplog.text

    @pytest.mark.parametrize("interval", [0, -1.5])
    def test_invalid_interval(self, interval):
        with pytest.raises(ValueError):
            RefreshScheduler(interval)

    def test_start_runs_ticks_until_stopped(self):
        ticked = threading.Event()
        scheduler = RefreshScheduler(0.01, ticked.set, name="test-refresh")

        scheduler.start()
        try:
            assert ticked.wait(2.0)
            assert scheduler.running
        finally:
            scheduler.stop()

        assert not scheduler.running

    def test_stop_without_start(self):
        scheduler = RefreshScheduler(60.0)

        scheduler.stop()

        assert not scheduler.running
