"""
Deferred work for the wizard.

The wizard debounces code regeneration through a PendingTask: one slot,
last write wins. Scheduling a new task cancels the one waiting.

Any object with `call_later(delay, callback)` returning a handle with
`cancel()` is a Scheduler, so a running asyncio loop works as-is:

    wizard = VariantWizard.open_add(backend, product_id,
                                    scheduler=asyncio.get_running_loop())

Server-side callers usually keep the default ImmediateScheduler, which runs
the callback right away (no debounce).
"""

from __future__ import annotations

import logging
from typing import Callable, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class Cancellable(Protocol):
    def cancel(self) -> None: ...


@runtime_checkable
class Scheduler(Protocol):
    """Runs a callback after `delay` seconds."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> Cancellable: ...


class _DoneHandle:
    def cancel(self) -> None:
        pass


class ImmediateScheduler:
    """Scheduler that ignores the delay and runs the callback synchronously."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> Cancellable:
        callback()
        return _DoneHandle()


class PendingTask:
    """
    Single-slot cancellable task.

    replace() cancels whatever is waiting and schedules the new callback.
    flush() runs the waiting callback now. A cancelled or superseded
    callback never runs, even if its scheduler fires it late.
    """

    def __init__(self, scheduler: Scheduler, delay: float = 0.0):
        self._scheduler = scheduler
        self._delay = delay
        self._handle: Cancellable | None = None
        self._runner: Callable[[], None] | None = None

    @property
    def pending(self) -> bool:
        return self._runner is not None

    def replace(self, callback: Callable[[], None]) -> None:
        self.cancel()

        def runner():
            if self._runner is not runner:
                return
            self._runner = None
            self._handle = None
            callback()

        self._runner = runner
        handle = self._scheduler.call_later(self._delay, runner)
        if self._runner is runner:
            self._handle = handle

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._runner = None

    def flush(self) -> bool:
        """Run the waiting callback immediately. Returns False if nothing was waiting."""
        runner = self._runner
        if runner is None:
            return False
        if self._handle is not None:
            self._handle.cancel()
        logger.debug("Flushing pending task")
        runner()
        return True
