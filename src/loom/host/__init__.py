"""Host tree adapters."""

from loom.host.adapter import HostAdapter, HostNode, SelectionRange
from loom.host.memory import (
    Document,
    Event,
    HostElement,
    HostText,
    MemoryHost,
    MutationRecord,
    MutationRecorder,
)
from loom.host.selectors import SelectorError, compile_selector

__all__ = [
    "Document",
    "Event",
    "HostAdapter",
    "HostElement",
    "HostNode",
    "HostText",
    "MemoryHost",
    "MutationRecord",
    "MutationRecorder",
    "SelectionRange",
    "SelectorError",
    "compile_selector",
]
