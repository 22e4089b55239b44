"""
Diff/patch engine.

``Patcher.patch`` mutates a host subtree so it matches a new VNode tree,
reusing the host nodes recorded on the old tree wherever the node type (and
element tag) is unchanged.
"""

from __future__ import annotations

from collections.abc import Sequence

from loom.config import RuntimeConfig
from loom.errors import MixedKeysError
from loom.host.adapter import HostAdapter, HostNode
from loom.logging import get_reconciler_logger
from loom.reconciler.attributes import AttributePatcher
from loom.reconciler.keyed import reconcile_keyed
from loom.vnode import Element, Fragment, Text, VNode, as_child_list, has_keys, same_type

logger = get_reconciler_logger()


class Patcher:
    """Applies VNode trees to a host tree through a ``HostAdapter``."""

    def __init__(self, adapter: HostAdapter, config: RuntimeConfig | None = None) -> None:
        self.adapter = adapter
        self.config = config or RuntimeConfig()
        self.attributes = AttributePatcher(adapter, self.config)

    def patch(
        self,
        parent: HostNode,
        old: VNode | None,
        new: VNode | None,
        anchor: HostNode | None = None,
    ) -> None:
        """Bring ``parent``'s subtree for ``old`` in line with ``new``."""
        if old is new:
            return
        if isinstance(old, Fragment) or isinstance(new, Fragment):
            self.patch_children(parent, as_child_list(old), as_child_list(new), anchor)
            return
        if old is None:
            assert new is not None
            self.adapter.insert_before(parent, self.materialize(new), anchor)
            return
        if new is None:
            self.remove(parent, old)
            return
        if not same_type(old, new):
            self.replace(parent, old, new)
            return

        new.host_ref = old.host_ref
        if isinstance(old, Text) and isinstance(new, Text):
            if old.value != new.value:
                self.adapter.set_text(new.host_ref, new.value)
        elif isinstance(old, Element) and isinstance(new, Element):
            self.attributes.apply(new.host_ref, new.tag, old.attrs, new.attrs)
            self.patch_children(new.host_ref, old.children, new.children)

    def patch_children(
        self,
        parent: HostNode,
        old: Sequence[VNode],
        new: Sequence[VNode],
        anchor: HostNode | None = None,
    ) -> None:
        """Reconcile a child list, keyed when either side carries keys."""
        if not has_keys(old) and not has_keys(new):
            self._patch_positional(parent, old, new, anchor)
            return
        if self.config.mixed_keys == "forbid" and any(child.key is None for child in new):
            raise MixedKeysError("child list mixes keyed and unkeyed nodes")
        reconcile_keyed(self, parent, old, new)

    def _patch_positional(
        self,
        parent: HostNode,
        old: Sequence[VNode],
        new: Sequence[VNode],
        anchor: HostNode | None,
    ) -> None:
        common = min(len(old), len(new))
        for index in range(common):
            self.patch(parent, old[index], new[index])
        for child in new[common:]:
            self.adapter.insert_before(parent, self.materialize(child), anchor)
        for child in old[common:]:
            self.remove(parent, child)

    def materialize(self, node: VNode) -> HostNode:
        """Create the host subtree for ``node`` and record it as ``host_ref``."""
        if isinstance(node, Text):
            node.host_ref = self.adapter.create_text(node.value)
            return node.host_ref
        if isinstance(node, Element):
            host = self.adapter.create_element(node.tag)
            node.host_ref = host
            self.attributes.apply(host, node.tag, None, node.attrs)
            for child in node.children:
                self.adapter.insert_before(host, self.materialize(child), None)
            return host
        raise TypeError(f"Cannot materialize {type(node).__name__} as a single host node")

    def replace(self, parent: HostNode, old: VNode, new: VNode) -> None:
        """Materialize ``new`` in place of ``old``'s host node."""
        host = self.materialize(new)
        self.adapter.insert_before(parent, host, old.host_ref)
        self.remove(parent, old)

    def remove(self, parent: HostNode, node: VNode) -> None:
        """Detach ``node``'s host subtree and release its host references."""
        host = node.host_ref
        if host is not None and self.adapter.parent_of(host) is parent:
            self.adapter.remove_child(parent, host)
        elif host is not None:
            logger.debug("Host node for %r already detached", node)
        release(node)


def release(node: VNode) -> None:
    """Clear ``host_ref`` across a VNode subtree."""
    node.host_ref = None
    if isinstance(node, (Element, Fragment)):
        for child in node.children:
            release(child)
