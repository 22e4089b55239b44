"""
Declarative event delegation.

Rules are registered per ``(event, selector)`` pair and dispatched from a
single host listener per event type on the component root. Registering the
same pair again replaces its handler, so calling ``on()`` during every render
never stacks listeners.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from loom.host.adapter import HostAdapter, HostNode

Handler = Callable[[Any], Any]
RuleKey = tuple[str, str | None]


class EventDelegator:
    """Delegated event rules for one component root."""

    def __init__(self, adapter: HostAdapter) -> None:
        self.adapter = adapter
        self.root: HostNode | None = None
        self.rules: dict[RuleKey, Handler] = {}
        self._listeners: dict[str, Callable[[Any], None]] = {}

    def on(self, event: str, selector: str | None, handler: Handler) -> None:
        self.rules[(event, selector)] = handler
        if self.root is not None:
            self._listen(event)

    def off(self, event: str, selector: str | None = None) -> None:
        self.rules.pop((event, selector), None)
        if self.root is not None and not any(key[0] == event for key in self.rules):
            self._unlisten(event)

    def bind(self, root: HostNode) -> None:
        """Attach one listener per registered event type to ``root``."""
        if self.root is not None and self.root is not root:
            self.unbind()
        self.root = root
        for event, _ in self.rules:
            self._listen(event)

    def unbind(self) -> None:
        for event in list(self._listeners):
            self._unlisten(event)
        self.root = None

    def clear(self) -> None:
        self.unbind()
        self.rules.clear()

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def _listen(self, event: str) -> None:
        if event in self._listeners:
            return

        def listener(host_event: Any) -> None:
            self.dispatch(event, host_event)

        self._listeners[event] = listener
        self.adapter.add_listener(self.root, event, listener)

    def _unlisten(self, event: str) -> None:
        listener = self._listeners.pop(event, None)
        if listener is not None and self.root is not None:
            self.adapter.remove_listener(self.root, event, listener)

    def dispatch(self, event: str, host_event: Any) -> None:
        """Run every rule for ``event`` whose selector matches the target's ancestry."""
        target = self.adapter.event_target(host_event)
        for (rule_event, selector), handler in list(self.rules.items()):
            if rule_event != event:
                continue
            match = self._closest(target, selector)
            if match is None:
                continue
            if hasattr(host_event, "delegate_target"):
                host_event.delegate_target = match
            handler(host_event)

    def _closest(self, target: HostNode | None, selector: str | None) -> HostNode | None:
        root = self.root
        if root is None or target is None or not self.adapter.contains(root, target):
            return None
        if selector is None:
            return root
        node = target
        while node is not None:
            if self.adapter.is_element(node) and self.adapter.matches(node, selector):
                return node
            if node is root:
                return None
            node = self.adapter.parent_of(node)
        return None
