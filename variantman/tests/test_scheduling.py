"""
Tests for deferred work (variantman.scheduling).

Uses a manual scheduler so tests decide when delayed callbacks fire.
"""

import pytest

from variantman.scheduling import ImmediateScheduler, PendingTask, Scheduler


class ManualScheduler:
    """Collects callbacks; run_all() fires the ones not cancelled."""

    class Handle:
        def __init__(self, callback):
            self.callback = callback
            self.cancelled = False

        def cancel(self):
            self.cancelled = True

    def __init__(self):
        self.handles = []

    def call_later(self, delay, callback):
        handle = self.Handle(callback)
        self.handles.append(handle)
        return handle

    def run_all(self):
        handles, self.handles = self.handles, []
        for handle in handles:
            if not handle.cancelled:
                handle.callback()


@pytest.fixture
def scheduler():
    return ManualScheduler()


def test_schedulers_satisfy_protocol(scheduler):
    assert isinstance(ImmediateScheduler(), Scheduler)
    assert isinstance(scheduler, Scheduler)


class TestImmediateScheduler:
    def test_runs_callback_at_once(self):
        calls = []
        task = PendingTask(ImmediateScheduler(), delay=10)

        task.replace(lambda: calls.append(1))

        assert calls == [1]
        assert not task.pending
        assert task.flush() is False


class TestPendingTask:
    def test_last_write_wins(self, scheduler):
        calls = []
        task = PendingTask(scheduler, delay=0.3)

        task.replace(lambda: calls.append("first"))
        task.replace(lambda: calls.append("second"))
        assert task.pending

        scheduler.run_all()

        assert calls == ["second"]
        assert not task.pending

    def test_cancel(self, scheduler):
        calls = []
        task = PendingTask(scheduler)

        task.replace(lambda: calls.append(1))
        task.cancel()
        scheduler.run_all()

        assert calls == []
        assert not task.pending

    def test_flush_runs_once(self, scheduler):
        calls = []
        task = PendingTask(scheduler)

        task.replace(lambda: calls.append(1))
        assert task.flush() is True
        scheduler.run_all()

        assert calls == [1]
        assert task.flush() is False

    def test_superseded_callback_ignored_even_if_fired(self):
        """A scheduler that cannot cancel still never runs a stale callback."""

        class Noop:
            def cancel(self):
                pass

        class Uncancellable:
            def __init__(self):
                self.fired = []

            def call_later(self, delay, callback):
                self.fired.append(callback)
                return Noop()

        calls = []
        uncancellable = Uncancellable()
        task = PendingTask(uncancellable)
        task.replace(lambda: calls.append("old"))
        task.replace(lambda: calls.append("new"))

        for callback in uncancellable.fired:
            callback()

        assert calls == ["new"]
