"""
Runtime bundle.

A ``Runtime`` groups everything a set of component instances shares: the
configuration, the microtask queue and render scheduler, the error channel,
the host adapter and the optional query source. Components use
``Runtime.default()`` unless given one explicitly; tests create their own.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

from loom.config import RuntimeConfig
from loom.host.adapter import HostAdapter, HostNode
from loom.host.memory import MemoryHost
from loom.logging import get_runtime_logger, log_with_context
from loom.query import QuerySource
from loom.reconciler.patch import Patcher
from loom.scheduler import MicrotaskQueue, Scheduler

if TYPE_CHECKING:
    from loom.component import Component

logger = get_runtime_logger()

T = TypeVar("T")

ErrorListener = Callable[[BaseException], Any]


class ErrorChannel:
    """Destination for errors raised outside any render stack."""

    def __init__(self) -> None:
        self._listeners: list[ErrorListener] = []
        self.count = 0

    def subscribe(self, listener: ErrorListener) -> Callable[[], None]:
        """Register ``listener``; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def report(self, error: BaseException) -> None:
        self.count += 1
        log_with_context(
            logger,
            logging.ERROR,
            f"Unhandled error in deferred callback: {error}",
            exc_info=error,
            error_type=type(error).__name__,
        )
        for listener in list(self._listeners):
            try:
                listener(error)
            except Exception:
                logger.exception("Error channel listener failed")


class Runtime:
    """
    Shared state of a set of component instances.

    Example:
        runtime = Runtime(config=RuntimeConfig(hook_order="warn"))
        Counter(runtime=runtime).mount(container)
        runtime.settle()
    """

    _default: Runtime | None = None

    def __init__(
        self,
        config: RuntimeConfig | None = None,
        host: HostAdapter | None = None,
        query_source: QuerySource | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self.config = config or RuntimeConfig()
        self.errors = ErrorChannel()
        self.queue = MicrotaskQueue(loop, error_handler=self.errors.report)
        self.scheduler = Scheduler(self.queue, error_handler=self.errors.report)
        self.host: HostAdapter = host or MemoryHost()
        if isinstance(self.host, MemoryHost) and self.host.document.error_handler is None:
            self.host.document.error_handler = self.errors.report
        self.query_source = query_source
        self.patcher = Patcher(self.host, self.config)
        self._instances: weakref.WeakValueDictionary[int, Component] = weakref.WeakValueDictionary()

    @classmethod
    def default(cls) -> Runtime:
        """The process-wide runtime, created on first use."""
        if cls._default is None:
            cls._default = cls()
        return cls._default

    @classmethod
    def set_default(cls, runtime: Runtime | None) -> None:
        cls._default = runtime

    # Scheduling

    def batch(self, fn: Callable[[], T]) -> T:
        return self.scheduler.batch(fn)

    def settle(self) -> int:
        """Drain the microtask queue until idle; returns how many callbacks ran."""
        return self.queue.drain()

    async def settle_async(self) -> None:
        await self.queue.wait_idle()

    # Host registry

    def register(self, host_root: HostNode, instance: Component) -> None:
        self._instances[id(host_root)] = instance

    def unregister(self, host_root: HostNode) -> None:
        self._instances.pop(id(host_root), None)

    def instance_at(self, host_node: HostNode) -> Component | None:
        """The component mounted on ``host_node``, if any."""
        instance = self._instances.get(id(host_node))
        if instance is not None and instance.host_root is host_node:
            return instance
        return None
