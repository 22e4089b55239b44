"""
Host tree adapter boundary.

The reconciler, focus tracking and event delegation talk to the rendering
surface only through this protocol. ``loom.host.memory.MemoryHost`` is the
reference implementation over an in-memory document.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Literal, Protocol, runtime_checkable

HostNode = Any
Listener = Callable[[Any], Any]


@dataclass(frozen=True)
class SelectionRange:
    """Caret/selection range of a text-like control."""

    start: int
    end: int
    direction: Literal["forward", "backward", "none"] = "none"


@runtime_checkable
class HostAdapter(Protocol):
    """Capabilities the runtime needs from a host tree."""

    # Creation
    def create_element(self, tag: str) -> HostNode: ...

    def create_text(self, value: str) -> HostNode: ...

    def parse_markup(self, markup: str) -> list[HostNode]: ...

    # Inspection
    def is_element(self, node: HostNode) -> bool: ...

    def tag_of(self, node: HostNode) -> str: ...

    def get_text(self, node: HostNode) -> str: ...

    def parent_of(self, node: HostNode) -> HostNode | None: ...

    def children_of(self, node: HostNode) -> Sequence[HostNode]: ...

    def contains(self, root: HostNode, node: HostNode) -> bool: ...

    def attributes_of(self, node: HostNode) -> dict[str, str]: ...

    # Mutation
    def set_text(self, node: HostNode, value: str) -> None: ...

    def get_attribute(self, node: HostNode, name: str) -> str | None: ...

    def set_attribute(self, node: HostNode, name: str, value: str) -> None: ...

    def remove_attribute(self, node: HostNode, name: str) -> None: ...

    def get_property(self, node: HostNode, name: str) -> Any: ...

    def set_property(self, node: HostNode, name: str, value: Any) -> None: ...

    def insert_before(self, parent: HostNode, node: HostNode, anchor: HostNode | None) -> None: ...

    def remove_child(self, parent: HostNode, node: HostNode) -> None: ...

    # Focus and selection
    def focused_node(self, root: HostNode) -> HostNode | None: ...

    def focus(self, node: HostNode) -> None: ...

    def get_selection(self, node: HostNode) -> SelectionRange | None: ...

    def set_selection(self, node: HostNode, selection: SelectionRange) -> None: ...

    def is_composing(self, node: HostNode) -> bool: ...

    # Events
    def add_listener(self, node: HostNode, event_type: str, listener: Listener) -> None: ...

    def remove_listener(self, node: HostNode, event_type: str, listener: Listener) -> None: ...

    def event_target(self, event: Any) -> HostNode | None: ...

    # Queries
    def resolve(self, selector: str) -> HostNode | None: ...

    def query(self, root: HostNode, selector: str) -> HostNode | None: ...

    def query_all(self, root: HostNode, selector: str) -> list[HostNode]: ...

    def matches(self, node: HostNode, selector: str) -> bool: ...
