"""Focus and selection preservation across re-renders."""

from __future__ import annotations

from dataclasses import dataclass

from loom.host.adapter import HostAdapter, HostNode, SelectionRange


@dataclass
class FocusSnapshot:
    """The focused control under a component root, taken before a patch."""

    node: HostNode
    id: str | None = None
    name: str | None = None
    selection: SelectionRange | None = None


def capture_focus(adapter: HostAdapter, root: HostNode) -> FocusSnapshot | None:
    """Remember the focused node inside ``root`` and its selection range."""
    node = adapter.focused_node(root)
    if node is None or node is root:
        return None
    return FocusSnapshot(
        node=node,
        id=adapter.get_attribute(node, "id") or None,
        name=adapter.get_attribute(node, "name") or None,
        selection=adapter.get_selection(node),
    )


def restore_focus(
    adapter: HostAdapter,
    root: HostNode,
    snapshot: FocusSnapshot | None,
) -> HostNode | None:
    """
    Put focus back after a patch.

    The original node is preferred; when the patch replaced it, the first
    element with the same ``id`` and then the same ``name`` takes its place.
    The selection range is reapplied when the control has one. Returns the
    node that ends up focused, or None.
    """
    if snapshot is None:
        return None

    target: HostNode | None = None
    if adapter.contains(root, snapshot.node):
        target = snapshot.node
    elif snapshot.id:
        target = adapter.query(root, f'[id="{snapshot.id}"]')
    if target is None and snapshot.name:
        target = adapter.query(root, f'[name="{snapshot.name}"]')
    if target is None:
        return None

    if adapter.focused_node(root) is not target:
        adapter.focus(target)
    if snapshot.selection is not None and not adapter.is_composing(target):
        adapter.set_selection(target, snapshot.selection)
    return target
