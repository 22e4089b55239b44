"""Tree diff/patch engine and keyed child-list reconciliation."""

from loom.reconciler.attributes import AttributePatcher, event_name
from loom.reconciler.keyed import lis, match_children, reconcile_keyed
from loom.reconciler.patch import Patcher, release

__all__ = [
    "AttributePatcher",
    "Patcher",
    "event_name",
    "lis",
    "match_children",
    "reconcile_keyed",
    "release",
]
