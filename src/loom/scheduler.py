"""
Render scheduler.

Components never re-render synchronously when their state changes. They are
added to a dirty set, and a flush is posted to the runtime's microtask queue.
The flush re-renders every dirty instance exactly once, in the order they were
marked. ``batch()`` holds the flush back until the outermost batch returns, so
any number of updates inside it coalesce into one render per instance.

A ``MicrotaskQueue`` bound to an asyncio loop drains itself via
``loop.call_soon``; an unbound queue is drained by calling ``drain()``, which
is what ``Runtime.settle()`` does.
"""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, Protocol, TypeVar

from loom.logging import get_scheduler_logger

logger = get_scheduler_logger()

T = TypeVar("T")

ErrorHandler = Callable[[BaseException], None]


def _log_error(error: BaseException) -> None:
    logger.error("Unhandled error in scheduled callback: %s", error, exc_info=error)


class Renderable(Protocol):
    """What the scheduler needs from a component instance."""

    unmounted: bool

    def render(self) -> None: ...


class MicrotaskQueue:
    """FIFO of callbacks drained run-to-completion."""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop | None = None,
        error_handler: ErrorHandler | None = None,
    ) -> None:
        self.loop = loop
        self.error_handler = error_handler or _log_error
        self._tasks: deque[Callable[[], Any]] = deque()
        self._draining = False
        self._posted = False

    @property
    def pending(self) -> int:
        return len(self._tasks)

    @property
    def idle(self) -> bool:
        return not self._tasks and not self._posted and not self._draining

    def enqueue(self, callback: Callable[[], Any]) -> None:
        self._tasks.append(callback)
        if self.loop is not None and not self._posted and not self._draining:
            self._posted = True
            self.loop.call_soon(self._run_posted)

    def _run_posted(self) -> None:
        self._posted = False
        self.drain()

    def drain(self) -> int:
        """Run queued callbacks, including ones enqueued meanwhile. Returns how many ran."""
        if self._draining:
            return 0
        self._draining = True
        count = 0
        try:
            while self._tasks:
                callback = self._tasks.popleft()
                count += 1
                try:
                    callback()
                except Exception as exc:
                    self.error_handler(exc)
        finally:
            self._draining = False
        return count

    async def wait_idle(self) -> None:
        """Yield to the event loop until nothing is queued or posted."""
        while not self.idle:
            if self.loop is None:
                self.drain()
            else:
                await asyncio.sleep(0)


class Scheduler:
    """Dirty set plus batching for one runtime."""

    def __init__(self, queue: MicrotaskQueue, error_handler: ErrorHandler | None = None) -> None:
        self.queue = queue
        self.error_handler = error_handler or _log_error
        self._dirty: dict[Renderable, None] = {}
        self.batch_depth = 0
        self.flush_scheduled = False
        self.flush_count = 0

    @property
    def pending(self) -> int:
        """Number of instances waiting for a re-render."""
        return len(self._dirty)

    def is_dirty(self, instance: Renderable) -> bool:
        return instance in self._dirty

    def mark_dirty(self, instance: Renderable) -> None:
        if instance in self._dirty:
            return
        self._dirty[instance] = None
        self._schedule()

    def discard(self, instance: Renderable) -> None:
        self._dirty.pop(instance, None)

    def defer(self, callback: Callable[[], Any]) -> None:
        """Run ``callback`` in a later microtask."""
        self.queue.enqueue(callback)

    def batch(self, fn: Callable[[], T]) -> T:
        """Run ``fn`` with flushing held back; returns its result."""
        with self.batching():
            return fn()

    @contextmanager
    def batching(self) -> Iterator[None]:
        self.batch_depth += 1
        try:
            yield
        finally:
            self.batch_depth -= 1
            if self.batch_depth == 0:
                self._schedule()

    def _schedule(self) -> None:
        if self.flush_scheduled or self.batch_depth > 0 or not self._dirty:
            return
        self.flush_scheduled = True
        self.queue.enqueue(self.flush)

    def flush(self) -> None:
        """Re-render every dirty instance once, in the order they were marked."""
        self.flush_scheduled = False
        instances = list(self._dirty)
        self._dirty.clear()
        if not instances:
            return
        self.flush_count += 1
        logger.debug("Flushing %d dirty instance(s)", len(instances))
        for instance in instances:
            if instance.unmounted:
                continue
            try:
                instance.render()
            except Exception as exc:
                self.error_handler(exc)
