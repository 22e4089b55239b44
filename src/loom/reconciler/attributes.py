"""
Attribute reconciliation.

Brings a host element's attributes, live form-control properties and event
listeners in line with a new attribute map. Only entries whose value changed
are written, so an unchanged map produces no host mutations.
"""

from __future__ import annotations

import weakref
from collections.abc import Mapping
from typing import Any

from loom.config import RuntimeConfig
from loom.host.adapter import HostAdapter, HostNode
from loom.vnode import AttrValue


def event_name(attr: str) -> str | None:
    """
    Map a listener attribute name to its event type.

    ``onclick``, ``onClick`` and ``on_click`` all map to ``"click"``.
    Returns None for names that are not listener attributes.
    """
    if len(attr) < 3 or not attr[:2].lower() == "on":
        return None
    rest = attr[2:]
    if rest.startswith("_"):
        rest = rest[1:]
    return rest.lower() or None


class _Handler:
    """Stable host listener that forwards to the current callable."""

    __slots__ = ("fn",)

    def __init__(self, fn: Any) -> None:
        self.fn = fn

    def __call__(self, event: Any) -> Any:
        return self.fn(event)


class AttributePatcher:
    """Applies attribute maps to host elements through a ``HostAdapter``."""

    def __init__(self, adapter: HostAdapter, config: RuntimeConfig) -> None:
        self.adapter = adapter
        self.config = config
        self._handlers: weakref.WeakKeyDictionary[Any, dict[str, _Handler]] = (
            weakref.WeakKeyDictionary()
        )

    def apply(
        self,
        node: HostNode,
        tag: str,
        old: Mapping[str, AttrValue] | None,
        new: Mapping[str, AttrValue],
    ) -> None:
        """Reconcile ``node`` from the ``old`` attribute map to ``new``."""
        old = old or {}
        for name in old:
            if name not in new:
                self._write(node, tag, name, None)
        for name, value in new.items():
            if name not in old or old[name] != value:
                self._write(node, tag, name, value)

    def listeners_of(self, node: HostNode) -> dict[str, Any]:
        """Current listener callables bound to ``node``, by event type."""
        return {event: handler.fn for event, handler in self._handlers.get(node, {}).items()}

    def _write(self, node: HostNode, tag: str, name: str, value: AttrValue | None) -> None:
        event = event_name(name)
        if event is not None and (callable(value) or self._has_handler(node, event)):
            self._set_listener(node, event, value if callable(value) else None)
            return
        if tag in self.config.form_controls and name in self.config.live_properties:
            self._set_live_property(node, name, value)
            return
        if value is None or value is False:
            if self.adapter.get_attribute(node, name) is not None:
                self.adapter.remove_attribute(node, name)
        elif value is True:
            self.adapter.set_attribute(node, name, "")
        else:
            self.adapter.set_attribute(node, name, str(value))

    def _has_handler(self, node: HostNode, event: str) -> bool:
        return event in self._handlers.get(node, {})

    def _set_listener(self, node: HostNode, event: str, fn: Any) -> None:
        handlers = self._handlers.get(node)
        if handlers is None:
            handlers = self._handlers[node] = {}
        current = handlers.get(event)
        if fn is None:
            if current is not None:
                self.adapter.remove_listener(node, event, current)
                del handlers[event]
        elif current is not None:
            current.fn = fn
        else:
            handler = handlers[event] = _Handler(fn)
            self.adapter.add_listener(node, event, handler)

    def _set_live_property(self, node: HostNode, name: str, value: AttrValue | None) -> None:
        if self.adapter.focused_node(node) is node and self.adapter.is_composing(node):
            return
        if name == "value":
            live: Any = "" if value is None or isinstance(value, bool) else str(value)
        else:
            live = bool(value) and value != "false"
        self.adapter.set_property(node, name, live)
