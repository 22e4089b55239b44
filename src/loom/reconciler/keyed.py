"""
Keyed child-list reconciliation.

Matches new children to old ones by key (unkeyed children pair by index),
patches matched pairs in place, and moves as few host nodes as possible: the
matched children whose old positions form a longest increasing subsequence
stay where they are, every other matched child is moved with one
insert-before, fresh children are materialized, and unclaimed old children are
removed last.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from loom.host.adapter import HostNode
from loom.logging import get_reconciler_logger
from loom.vnode import VNode, same_type

if TYPE_CHECKING:
    from loom.reconciler.patch import Patcher

logger = get_reconciler_logger()


def lis(seq: Sequence[int]) -> list[int]:
    """
    Longest strictly increasing subsequence of ``seq``.

    Returns positions into ``seq`` (not values), in ascending order. Ties
    resolve toward later elements: ``lis([2, 0])`` is ``[1]``.
    """
    if not seq:
        return []
    tails: list[int] = []  # positions in seq ending the best run of each length
    prev: list[int] = [-1] * len(seq)
    for i, value in enumerate(seq):
        lo, hi = 0, len(tails)
        while lo < hi:
            mid = (lo + hi) // 2
            if seq[tails[mid]] < value:
                lo = mid + 1
            else:
                hi = mid
        if lo > 0:
            prev[i] = tails[lo - 1]
        if lo == len(tails):
            tails.append(i)
        else:
            tails[lo] = i
    result: list[int] = []
    k = tails[-1]
    while k != -1:
        result.append(k)
        k = prev[k]
    result.reverse()
    return result


def match_children(old: Sequence[VNode], new: Sequence[VNode]) -> list[int]:
    """
    Pair each new child with an old one.

    Returns, for every position in ``new``, the index of the old child it
    reuses, or -1 when it has to be materialized.
    """
    by_key: dict[str, int] = {}
    duplicates: list[str] = []
    for index, child in enumerate(old):
        if child.key is None:
            continue
        if child.key in by_key:
            duplicates.append(child.key)
            continue
        by_key[child.key] = index
    if duplicates:
        logger.warning("Duplicate keys in child list, later occurrences not reused: %s", duplicates)

    claimed: set[int] = set()
    sources: list[int] = []
    for position, child in enumerate(new):
        source = -1
        if child.key is not None:
            candidate = by_key.get(child.key, -1)
            if candidate >= 0 and candidate not in claimed and same_type(old[candidate], child):
                source = candidate
        elif position < len(old):
            peer = old[position]
            if peer.key is None and position not in claimed and same_type(peer, child):
                source = position
        if source >= 0:
            claimed.add(source)
        sources.append(source)
    return sources


def reconcile_keyed(
    patcher: Patcher,
    parent: HostNode,
    old: Sequence[VNode],
    new: Sequence[VNode],
) -> None:
    """Reconcile ``parent``'s children from ``old`` to ``new`` in keyed mode."""
    adapter = patcher.adapter
    sources = match_children(old, new)

    for position, source in enumerate(sources):
        if source >= 0:
            patcher.patch(parent, old[source], new[position])

    matched = [position for position, source in enumerate(sources) if source >= 0]
    stable = {matched[k] for k in lis([sources[position] for position in matched])}

    anchor: HostNode | None = None
    for position in range(len(new) - 1, -1, -1):
        child = new[position]
        if sources[position] < 0:
            adapter.insert_before(parent, patcher.materialize(child), anchor)
        elif position not in stable:
            adapter.insert_before(parent, child.host_ref, anchor)
        anchor = child.host_ref

    reused = set(sources)
    for index, child in enumerate(old):
        if index not in reused:
            patcher.remove(parent, child)
