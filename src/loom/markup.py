"""
Markup parsing: raw markup strings to VNodes.

Components may return a markup string instead of a VNode tree. The string is
parsed into VNodes (keys taken from the key attribute, ``data-key`` by
default) and then reconciled like any other output.
"""

from __future__ import annotations

from html.parser import HTMLParser

from loom.vnode import Element, Fragment, Text, VNode

VOID_ELEMENTS = frozenset(
    {
        "area",
        "base",
        "br",
        "col",
        "embed",
        "hr",
        "img",
        "input",
        "link",
        "meta",
        "param",
        "source",
        "track",
        "wbr",
    }
)


class _VNodeBuilder(HTMLParser):
    """Build a VNode forest from raw markup."""

    def __init__(self, key_attribute: str) -> None:
        super().__init__(convert_charrefs=True)
        self.key_attribute = key_attribute
        self.roots: list[VNode] = []
        self._stack: list[Element] = []

    def _append(self, node: VNode) -> None:
        if self._stack:
            self._stack[-1].children.append(node)
        else:
            self.roots.append(node)

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        attributes: dict[str, str | bool] = {}
        for name, value in attrs:
            attributes[name] = True if value is None else value
        key = attributes.get(self.key_attribute)
        elem = Element(
            tag=tag,
            attrs=attributes,
            key=key if isinstance(key, str) else None,
        )
        self._append(elem)
        if tag not in VOID_ELEMENTS:
            self._stack.append(elem)

    def handle_endtag(self, tag: str) -> None:
        # Close up to the nearest matching open tag; stray end tags are ignored
        for depth in range(len(self._stack) - 1, -1, -1):
            if self._stack[depth].tag == tag:
                del self._stack[depth:]
                return

    def handle_data(self, data: str) -> None:
        if not data:
            return
        siblings = self._stack[-1].children if self._stack else self.roots
        if siblings and isinstance(siblings[-1], Text):
            siblings[-1] = Text(value=siblings[-1].value + data)
        else:
            self._append(Text(value=data))


def parse_markup(markup: str, key_attribute: str = "data-key") -> list[VNode]:
    """Parse a markup string into a list of top-level VNodes."""
    builder = _VNodeBuilder(key_attribute)
    builder.feed(markup)
    builder.close()
    return builder.roots


def markup_to_vnode(markup: str, key_attribute: str = "data-key") -> VNode:
    """Parse markup into one VNode; several top-level nodes become a fragment."""
    nodes = parse_markup(markup, key_attribute)
    if len(nodes) == 1:
        return nodes[0]
    return Fragment(children=nodes)
