"""
Virtual node types.

A VNode describes a subtree before it is materialized against the host tree:

    Text(value)
    Element(tag, attrs, children, key)
    Fragment(children)

Nodes are immutable once constructed, except for ``host_ref``: the host node a
VNode produced. The reconciler sets it when the node is first materialized and
hands it forward to the VNode that replaces this one on the next render.

Example:
    >>> from loom.vnode import h
    >>> tree = h("ul", {"class": "todos"}, [h("li", None, t, key=t) for t in ("a", "b")])
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar

AttrValue = str | bool | Callable[..., Any]

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")

# Attribute aliases accepted by ``h()``
_CLASS_ALIASES = frozenset({"className", "class_", "klass"})


@dataclass(eq=False)
class Text:
    """Text node."""

    value: str
    host_ref: Any = field(default=None, repr=False)

    kind: ClassVar[str] = "text"
    key: ClassVar[str | None] = None


@dataclass(eq=False)
class Element:
    """Element node with attributes, children and an optional reconciliation key."""

    tag: str
    attrs: dict[str, AttrValue] = field(default_factory=dict)
    children: list[VNode] = field(default_factory=list)
    key: str | None = None
    host_ref: Any = field(default=None, repr=False)

    kind: ClassVar[str] = "element"

    def __post_init__(self) -> None:
        if any(isinstance(child, Fragment) for child in self.children):
            self.children = normalize_children(self.children)


@dataclass(eq=False)
class Fragment:
    """Grouping node; flattened into its parent's child list by normalization."""

    children: list[VNode] = field(default_factory=list)
    host_ref: Any = field(default=None, repr=False)

    kind: ClassVar[str] = "fragment"
    key: ClassVar[str | None] = None

    def __post_init__(self) -> None:
        if any(isinstance(child, Fragment) for child in self.children):
            self.children = normalize_children(self.children)


VNode = Text | Element | Fragment

VNODE_TYPES = (Text, Element, Fragment)


# =============================================================================
# Construction
# =============================================================================


def h(
    tag: str,
    attrs: Mapping[str, Any] | None = None,
    *children: Any,
    key: Any = None,
) -> Element:
    """
    Build an element node.

    ``key`` may be given as a keyword or inside ``attrs``; it is always stored
    as a string.
    """
    normalized, attr_key = normalize_attrs(attrs)
    if key is None:
        key = attr_key
    return Element(
        tag=tag.lower(),
        attrs=normalized,
        children=normalize_children(children),
        key=None if key is None else str(key),
    )


def text(value: Any) -> Text:
    """Build a text node."""
    return Text(value="" if value is None else str(value))


def fragment(*children: Any) -> Fragment:
    """Build a fragment node."""
    return Fragment(children=normalize_children(children))


def normalize_attrs(attrs: Mapping[str, Any] | None) -> tuple[dict[str, AttrValue], str | None]:
    """
    Normalize attribute aliases and values.

    - ``className``/``class_`` become ``class``
    - a ``style`` mapping becomes a ``"prop: value; ..."`` string
    - a ``dataset`` mapping becomes ``data-*`` attributes
    - ``key`` is lifted out and returned separately
    - ``None`` values are dropped, numbers become strings
    """
    result: dict[str, AttrValue] = {}
    key: str | None = None
    if not attrs:
        return result, key

    for name, value in attrs.items():
        if name == "key":
            key = None if value is None else str(value)
            continue
        if value is None:
            continue
        if name in _CLASS_ALIASES:
            name = "class"
        if name == "style" and isinstance(value, Mapping):
            value = style_to_string(value)
        if name == "dataset" and isinstance(value, Mapping):
            for data_key, data_value in value.items():
                if data_value is not None:
                    result[f"data-{_kebab(str(data_key))}"] = _attr_value(data_value)
            continue
        result[name] = _attr_value(value)
    return result, key


def style_to_string(style: Mapping[str, Any]) -> str:
    """Serialize a style mapping; camelCase property names become kebab-case."""
    parts = [f"{_kebab(str(prop))}: {value}" for prop, value in style.items() if value is not None]
    return "; ".join(parts)


def _kebab(name: str) -> str:
    if "-" in name:
        return name
    return _CAMEL_BOUNDARY.sub("-", name).lower()


def _attr_value(value: Any) -> AttrValue:
    if isinstance(value, bool) or callable(value):
        return value
    return str(value)


def normalize_children(children: Iterable[Any]) -> list[VNode]:
    """
    Flatten raw children into a list of VNodes.

    ``None`` and booleans are skipped, nested iterables and fragments are
    flattened, VNodes pass through, everything else becomes a ``Text``.
    """
    result: list[VNode] = []
    for child in children:
        if child is None or isinstance(child, bool):
            continue
        if isinstance(child, Fragment):
            result.extend(normalize_children(child.children))
        elif isinstance(child, (Text, Element)):
            result.append(child)
        elif isinstance(child, (str, int, float)):
            result.append(Text(value=str(child)))
        elif isinstance(child, (list, tuple)) or _is_generator(child):
            result.extend(normalize_children(child))
        else:
            result.append(Text(value=str(child)))
    return result


def _is_generator(value: Any) -> bool:
    return hasattr(value, "__next__") and hasattr(value, "__iter__")


def to_vnode(output: Any) -> VNode:
    """
    Coerce a render function's non-markup output into a single VNode.

    Lists become fragments and ``None`` an empty fragment. Markup strings are
    handled by ``loom.markup`` before reaching here.
    """
    if output is None:
        return Fragment(children=[])
    if isinstance(output, Fragment):
        return Fragment(children=normalize_children(output.children))
    if isinstance(output, (Text, Element)):
        return output
    if isinstance(output, (list, tuple)) or _is_generator(output):
        return Fragment(children=normalize_children(output))
    return Text(value=str(output))


def as_child_list(node: VNode | None) -> list[VNode]:
    """Return the child list a root node contributes to its host container."""
    if node is None:
        return []
    if isinstance(node, Fragment):
        return node.children
    return [node]


# =============================================================================
# Comparison
# =============================================================================


def same_type(a: VNode | None, b: VNode | None) -> bool:
    """True when ``b`` can be patched onto ``a``'s host node."""
    if a is None or b is None:
        return False
    if a.kind != b.kind:
        return False
    if isinstance(a, Element) and isinstance(b, Element):
        return a.tag == b.tag
    return True


def is_equal(a: VNode | None, b: VNode | None) -> bool:
    """Structural equality: same type, key, attributes and children."""
    if a is b:
        return True
    if a is None or b is None or not same_type(a, b):
        return False
    if isinstance(a, Text) and isinstance(b, Text):
        return a.value == b.value
    if isinstance(a, Element) and isinstance(b, Element):
        if a.key != b.key or a.attrs != b.attrs:
            return False
    return len(a.children) == len(b.children) and all(
        is_equal(x, y) for x, y in zip(a.children, b.children)
    )


def has_keys(children: Iterable[VNode]) -> bool:
    """True when any child carries a key."""
    return any(child.key is not None for child in children)
