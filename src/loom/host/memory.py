"""In-memory host tree: a small DOM with events, focus, selection and mutation records.

``MemoryHost`` adapts a ``Document`` to the ``HostAdapter`` protocol. It is the
default host of a ``Runtime`` and the one the test suite runs against.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any, Literal

from markupsafe import escape

from loom.host.adapter import Listener, SelectionRange
from loom.host.selectors import compile_selector
from loom.logging import get_host_logger
from loom.markup import VOID_ELEMENTS, parse_markup
from loom.vnode import Element, Text, VNode

logger = get_host_logger()

MutationType = Literal["childList", "attributes", "characterData"]

TEXT_INPUT_TYPES = frozenset({"text", "search", "url", "tel", "password", "email"})


# ── Mutation records ──────────────────────────────────────────────────


@dataclass
class MutationRecord:
    """One observed change to the host tree."""

    type: MutationType
    target: Node
    added_nodes: tuple[Node, ...] = ()
    removed_nodes: tuple[Node, ...] = ()
    attribute_name: str | None = None
    old_value: str | None = None


class MutationRecorder:
    """
    Collects mutation records under an observed root.

    Example:
        with MutationRecorder(container) as recorder:
            component.render()
        assert recorder.records == []
    """

    def __init__(self, root: Node | None = None) -> None:
        self.root: Node | None = None
        self.records: list[MutationRecord] = []
        if root is not None:
            self.observe(root)

    def observe(self, root: Node) -> None:
        self.disconnect()
        self.root = root
        root.document.recorders.append(self)

    def disconnect(self) -> None:
        if self.root is not None and self in self.root.document.recorders:
            self.root.document.recorders.remove(self)
        self.root = None

    def take(self) -> list[MutationRecord]:
        """Return and clear the collected records."""
        records, self.records = self.records, []
        return records

    def count(self, type: MutationType | None = None) -> int:
        if type is None:
            return len(self.records)
        return sum(1 for record in self.records if record.type == type)

    def insertions_of(self, node: Node) -> int:
        """Number of times ``node`` was inserted (moves included)."""
        return sum(
            1
            for record in self.records
            if record.type == "childList" and any(added is node for added in record.added_nodes)
        )

    def __enter__(self) -> MutationRecorder:
        return self

    def __exit__(self, *exc: object) -> None:
        self.disconnect()

    def _accept(self, record: MutationRecord) -> None:
        if self.root is not None and self.root.contains(record.target):
            self.records.append(record)


# ── Events ────────────────────────────────────────────────────────────


@dataclass
class Event:
    """A dispatched host event."""

    type: str
    target: Node | None = None
    bubbles: bool = True
    detail: dict[str, Any] = field(default_factory=dict)
    current_target: Node | None = None
    delegate_target: Node | None = None
    default_prevented: bool = False
    propagation_stopped: bool = False

    def stop_propagation(self) -> None:
        self.propagation_stopped = True

    def prevent_default(self) -> None:
        self.default_prevented = True


# ── Nodes ─────────────────────────────────────────────────────────────


class Node:
    """Base class for host nodes."""

    def __init__(self, document: Document) -> None:
        self.document = document
        self.parent: HostElement | None = None

    @property
    def connected(self) -> bool:
        return self.document.body.contains(self)

    def contains(self, other: Node | None) -> bool:
        """True when ``other`` is this node or one of its descendants."""
        node = other
        while node is not None:
            if node is self:
                return True
            node = node.parent
        return False

    def ancestors(self) -> Iterator[HostElement]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    @property
    def text_content(self) -> str:
        raise NotImplementedError

    def serialize(self) -> str:
        raise NotImplementedError


class HostText(Node):
    """Text node."""

    def __init__(self, document: Document, data: str) -> None:
        super().__init__(document)
        self._data = data

    @property
    def data(self) -> str:
        return self._data

    @data.setter
    def data(self, value: str) -> None:
        old = self._data
        if old == value:
            return
        self._data = value
        self.document.notify(MutationRecord("characterData", self, old_value=old))

    @property
    def text_content(self) -> str:
        return self._data

    def serialize(self) -> str:
        return str(escape(self._data))

    def __repr__(self) -> str:
        return f"HostText({self._data!r})"


class HostElement(Node):
    """Element node with attributes, live properties and listeners."""

    def __init__(self, document: Document, tag: str) -> None:
        super().__init__(document)
        self.tag = tag.lower()
        self.attributes: dict[str, str] = {}
        self.children: list[Node] = []
        self.properties: dict[str, Any] = {}
        self.listeners: dict[str, list[Listener]] = {}
        self.composing = False
        self.selection_start = 0
        self.selection_end = 0
        self.selection_direction: Literal["forward", "backward", "none"] = "none"

    def __repr__(self) -> str:
        ident = f"#{self.attributes['id']}" if "id" in self.attributes else ""
        return f"<HostElement {self.tag}{ident}>"

    # Attributes

    def get_attribute(self, name: str) -> str | None:
        return self.attributes.get(name)

    def has_attribute(self, name: str) -> bool:
        return name in self.attributes

    def set_attribute(self, name: str, value: str) -> None:
        old = self.attributes.get(name)
        self.attributes[name] = value
        self.document.notify(
            MutationRecord("attributes", self, attribute_name=name, old_value=old)
        )

    def remove_attribute(self, name: str) -> None:
        if name not in self.attributes:
            return
        old = self.attributes.pop(name)
        self.document.notify(
            MutationRecord("attributes", self, attribute_name=name, old_value=old)
        )

    # Live properties

    def get_property(self, name: str) -> Any:
        if name in self.properties:
            return self.properties[name]
        if name == "value":
            if self.tag == "textarea":
                return self.text_content
            return self.attributes.get("value", "")
        if name in ("checked", "disabled", "selected"):
            return name in self.attributes
        return self.attributes.get(name)

    def set_property(self, name: str, value: Any) -> None:
        self.properties[name] = value
        if name == "value" and self.supports_selection:
            end = len(str(value))
            self.selection_start = self.selection_end = end
            self.selection_direction = "none"

    # Children

    def insert_before(self, node: Node, anchor: Node | None = None) -> None:
        if anchor is not None and anchor.parent is not self:
            raise ValueError(f"{anchor!r} is not a child of {self!r}")
        if node.contains(self):
            raise ValueError(f"Cannot insert {node!r} into its own subtree")
        previous = node.parent
        if previous is not None:
            previous._detach(node)
        index = len(self.children) if anchor is None else self.children.index(anchor)
        self.children.insert(index, node)
        node.parent = self
        self.document.notify(MutationRecord("childList", self, added_nodes=(node,)))

    def append_child(self, node: Node) -> None:
        self.insert_before(node, None)

    def remove_child(self, node: Node) -> None:
        if node.parent is not self:
            raise ValueError(f"{node!r} is not a child of {self!r}")
        self._detach(node)

    def _detach(self, node: Node) -> None:
        active = self.document.active_element
        if active is not None and node.contains(active):
            self.document.active_element = None
        self.children.remove(node)
        node.parent = None
        self.document.notify(MutationRecord("childList", self, removed_nodes=(node,)))

    def clear(self) -> None:
        for child in list(self.children):
            self.remove_child(child)

    @property
    def first_child(self) -> Node | None:
        return self.children[0] if self.children else None

    @property
    def element_children(self) -> list[HostElement]:
        return [child for child in self.children if isinstance(child, HostElement)]

    def descendants(self) -> Iterator[HostElement]:
        """Element descendants in document order."""
        for child in self.children:
            if isinstance(child, HostElement):
                yield child
                yield from child.descendants()

    # Queries

    def matches(self, selector: str) -> bool:
        return compile_selector(selector).matches(self)

    def query(self, selector: str) -> HostElement | None:
        compiled = compile_selector(selector)
        return next((node for node in self.descendants() if compiled.matches(node)), None)

    def query_all(self, selector: str) -> list[HostElement]:
        compiled = compile_selector(selector)
        return [node for node in self.descendants() if compiled.matches(node)]

    def closest(self, selector: str) -> HostElement | None:
        compiled = compile_selector(selector)
        node: HostElement | None = self
        while node is not None:
            if compiled.matches(node):
                return node
            node = node.parent
        return None

    # Focus and selection

    @property
    def supports_selection(self) -> bool:
        if self.tag == "textarea":
            return True
        if self.tag == "input":
            return self.attributes.get("type", "text").lower() in TEXT_INPUT_TYPES
        return False

    def focus(self) -> None:
        if self.connected:
            self.document.active_element = self

    def blur(self) -> None:
        if self.document.active_element is self:
            self.document.active_element = None

    def set_selection_range(
        self,
        start: int,
        end: int,
        direction: Literal["forward", "backward", "none"] = "none",
    ) -> None:
        if not self.supports_selection:
            raise ValueError(f"{self!r} does not support selection")
        length = len(str(self.get_property("value")))
        start = max(0, min(start, length))
        end = max(start, min(end, length))
        self.selection_start, self.selection_end = start, end
        self.selection_direction = direction

    # Events

    def add_event_listener(self, event_type: str, listener: Listener) -> None:
        bucket = self.listeners.setdefault(event_type, [])
        if listener not in bucket:
            bucket.append(listener)

    def remove_event_listener(self, event_type: str, listener: Listener) -> None:
        bucket = self.listeners.get(event_type)
        if bucket and listener in bucket:
            bucket.remove(listener)

    def dispatch_event(self, event: Event) -> Event:
        """Dispatch ``event`` at this element and bubble it to the root."""
        event.target = self
        if event.type == "compositionstart":
            self.composing = True
        elif event.type == "compositionend":
            self.composing = False

        path: list[HostElement] = [self]
        if event.bubbles:
            path.extend(self.ancestors())
        for node in path:
            event.current_target = node
            for listener in list(node.listeners.get(event.type, ())):
                try:
                    listener(event)
                except Exception as exc:
                    self.document.report(exc)
            if event.propagation_stopped:
                break
        event.current_target = None
        return event

    # Serialization

    @property
    def text_content(self) -> str:
        return "".join(child.text_content for child in self.children)

    @property
    def inner_html(self) -> str:
        return "".join(child.serialize() for child in self.children)

    @inner_html.setter
    def inner_html(self, markup: str) -> None:
        self.clear()
        for node in self.document.parse_markup(markup):
            self.append_child(node)

    @property
    def outer_html(self) -> str:
        return self.serialize()

    def serialize(self) -> str:
        attrs = "".join(f' {name}="{escape(value)}"' for name, value in self.attributes.items())
        if self.tag in VOID_ELEMENTS:
            return f"<{self.tag}{attrs}>"
        return f"<{self.tag}{attrs}>{self.inner_html}</{self.tag}>"


class Document:
    """Owner of a host tree; holds the body, focus state and recorders."""

    def __init__(self, error_handler: Callable[[BaseException], None] | None = None) -> None:
        self.recorders: list[MutationRecorder] = []
        self.active_element: HostElement | None = None
        self.error_handler = error_handler
        self.body = HostElement(self, "body")

    def create_element(self, tag: str) -> HostElement:
        return HostElement(self, tag)

    def create_text(self, data: str) -> HostText:
        return HostText(self, data)

    def parse_markup(self, markup: str) -> list[Node]:
        """Parse markup into detached host nodes."""
        return [self._build(node) for node in parse_markup(markup)]

    def _build(self, vnode: VNode) -> Node:
        if isinstance(vnode, Text):
            return self.create_text(vnode.value)
        assert isinstance(vnode, Element)
        element = self.create_element(vnode.tag)
        for name, value in vnode.attrs.items():
            element.attributes[name] = "" if value is True else str(value)
        for child in vnode.children:
            built = self._build(child)
            element.children.append(built)
            built.parent = element
        return element

    def query(self, selector: str) -> HostElement | None:
        if self.body.matches(selector):
            return self.body
        return self.body.query(selector)

    def query_all(self, selector: str) -> list[HostElement]:
        return self.body.query_all(selector)

    def notify(self, record: MutationRecord) -> None:
        for recorder in list(self.recorders):
            recorder._accept(record)

    def report(self, exc: BaseException) -> None:
        """Route an error raised by an event listener."""
        if self.error_handler is not None:
            self.error_handler(exc)
        else:
            logger.error("Unhandled error in event listener: %s", exc, exc_info=exc)


# ── Adapter ───────────────────────────────────────────────────────────


class MemoryHost:
    """``HostAdapter`` implementation over a ``Document``."""

    def __init__(self, document: Document | None = None) -> None:
        self.document = document or Document()

    def create_element(self, tag: str) -> HostElement:
        return self.document.create_element(tag)

    def create_text(self, value: str) -> HostText:
        return self.document.create_text(value)

    def parse_markup(self, markup: str) -> list[Node]:
        return self.document.parse_markup(markup)

    def is_element(self, node: Any) -> bool:
        return isinstance(node, HostElement)

    def tag_of(self, node: HostElement) -> str:
        return node.tag

    def get_text(self, node: Node) -> str:
        return node.text_content

    def parent_of(self, node: Node) -> HostElement | None:
        return node.parent

    def children_of(self, node: HostElement) -> list[Node]:
        return list(node.children)

    def contains(self, root: Node, node: Node | None) -> bool:
        return root.contains(node)

    def attributes_of(self, node: HostElement) -> dict[str, str]:
        return dict(node.attributes)

    def set_text(self, node: HostText, value: str) -> None:
        node.data = value

    def get_attribute(self, node: HostElement, name: str) -> str | None:
        return node.get_attribute(name)

    def set_attribute(self, node: HostElement, name: str, value: str) -> None:
        node.set_attribute(name, value)

    def remove_attribute(self, node: HostElement, name: str) -> None:
        node.remove_attribute(name)

    def get_property(self, node: HostElement, name: str) -> Any:
        return node.get_property(name)

    def set_property(self, node: HostElement, name: str, value: Any) -> None:
        node.set_property(name, value)

    def insert_before(self, parent: HostElement, node: Node, anchor: Node | None) -> None:
        parent.insert_before(node, anchor)

    def remove_child(self, parent: HostElement, node: Node) -> None:
        parent.remove_child(node)

    def focused_node(self, root: Node) -> HostElement | None:
        active = self.document.active_element
        if active is not None and root.contains(active):
            return active
        return None

    def focus(self, node: HostElement) -> None:
        node.focus()

    def get_selection(self, node: Any) -> SelectionRange | None:
        if not isinstance(node, HostElement) or not node.supports_selection:
            return None
        return SelectionRange(node.selection_start, node.selection_end, node.selection_direction)

    def set_selection(self, node: HostElement, selection: SelectionRange) -> None:
        if node.supports_selection:
            node.set_selection_range(selection.start, selection.end, selection.direction)

    def is_composing(self, node: Any) -> bool:
        return isinstance(node, HostElement) and node.composing

    def add_listener(self, node: HostElement, event_type: str, listener: Listener) -> None:
        node.add_event_listener(event_type, listener)

    def remove_listener(self, node: HostElement, event_type: str, listener: Listener) -> None:
        node.remove_event_listener(event_type, listener)

    def event_target(self, event: Event) -> Node | None:
        return event.target

    def resolve(self, selector: str) -> HostElement | None:
        return self.document.query(selector)

    def query(self, root: HostElement, selector: str) -> HostElement | None:
        return root.query(selector)

    def query_all(self, root: HostElement, selector: str) -> list[HostElement]:
        return root.query_all(selector)

    def matches(self, node: Any, selector: str) -> bool:
        return isinstance(node, HostElement) and node.matches(selector)
