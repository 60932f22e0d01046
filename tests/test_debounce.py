"""
Tests for the debounce utility.

A burst of calls must collapse into one trailing call with the latest
arguments; flush and cancel act on the pending call only.
"""

import threading
import time

from utils.debounce import Debouncer, debounce


def _wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class TestDebouncer:

    def test_burst_collapses_into_one_call_with_latest_args(self):
        calls = []
        done = threading.Event()

        def record(value):
            calls.append(value)
            done.set()

        debounced = Debouncer(record, delay=0.05)
        for i in range(5):
            debounced(i)

        assert done.wait(2.0)
        time.sleep(0.1)
        assert calls == [4]
        assert not debounced.pending

    def test_flush_runs_pending_call_immediately(self):
        calls = []
        debounced = Debouncer(calls.append, delay=10)
        debounced("a")
        debounced("b")

        assert debounced.pending
        assert debounced.flush() is True
        assert calls == ["b"]
        assert debounced.flush() is False

    def test_cancel_drops_pending_call(self):
        calls = []
        debounced = Debouncer(calls.append, delay=0.05)
        debounced("x")

        assert debounced.cancel() is True
        time.sleep(0.15)
        assert calls == []
        assert debounced.cancel() is False

    def test_separate_bursts_each_fire(self):
        calls = []
        debounced = Debouncer(calls.append, delay=0.03)

        debounced(1)
        assert _wait_for(lambda: calls == [1])
        debounced(2)
        assert _wait_for(lambda: calls == [1, 2])

    def test_exception_in_timer_call_is_logged_not_raised(self, caplog):
        fired = threading.Event()

        def boom():
            fired.set()
            raise RuntimeError("sync failed")

        debounced = Debouncer(boom, delay=0.01, name="boom")
        debounced()

        assert fired.wait(2.0)
        assert _wait_for(lambda: "'boom' raised" in caplog.text)

    def test_decorator_form(self):
        calls = []

        @debounce(10)
        def save(value):
            calls.append(value)

        save(1)
        save(2)
        save.flush()
        assert calls == [2]
