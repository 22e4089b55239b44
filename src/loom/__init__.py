"""
Loom - a UI reconciliation runtime.

Components render VNode trees (or markup strings) into a host tree. A render
scheduler coalesces updates into one re-render per instance per microtask,
the reconciler patches the host tree in place with minimal keyed moves, and a
positional hooks runtime keeps per-instance state across renders.

Example usage:
    >>> from loom import Runtime, define_component, h
    >>>
    >>> def Counter(ctx):
    ...     count, set_count = ctx.use_state(0)
    ...     return h("button", {"onclick": lambda e: set_count(count + 1)}, count)
    >>>
    >>> runtime = Runtime()
    >>> Counter = define_component(Counter)
    >>> Counter(runtime=runtime).mount(runtime.host.document.body)
    >>> runtime.settle()
"""

from loom.component import Component
from loom.config import RuntimeConfig
from loom.errors import (
    ConfigurationError,
    ErrorContext,
    HookOrderError,
    LifecycleError,
    LoomError,
    MixedKeysError,
    MountError,
)
from loom.functional import FunctionComponent, RenderContext, define_component
from loom.hooks import (
    Context,
    Ref,
    create_context,
    deps_changed,
    use_callback,
    use_context,
    use_effect,
    use_memo,
    use_query,
    use_ref,
    use_state,
)
from loom.host import Document, HostAdapter, MemoryHost, MutationRecorder, SelectionRange
from loom.markup import markup_to_vnode, parse_markup
from loom.query import QueryResult, QuerySnapshot, QuerySource
from loom.reconciler import Patcher
from loom.runtime import ErrorChannel, Runtime
from loom.scheduler import MicrotaskQueue, Scheduler
from loom.vnode import Element, Fragment, Text, VNode, fragment, h, text

__version__ = "0.1.0"

__all__ = [
    # Components
    "Component",
    "FunctionComponent",
    "RenderContext",
    "define_component",
    # VNodes
    "Element",
    "Fragment",
    "Text",
    "VNode",
    "fragment",
    "h",
    "text",
    "markup_to_vnode",
    "parse_markup",
    # Hooks
    "Context",
    "Ref",
    "create_context",
    "deps_changed",
    "use_callback",
    "use_context",
    "use_effect",
    "use_memo",
    "use_query",
    "use_ref",
    "use_state",
    # Runtime
    "ErrorChannel",
    "MicrotaskQueue",
    "Patcher",
    "Runtime",
    "RuntimeConfig",
    "Scheduler",
    # Host
    "Document",
    "HostAdapter",
    "MemoryHost",
    "MutationRecorder",
    "SelectionRange",
    # Query boundary
    "QueryResult",
    "QuerySnapshot",
    "QuerySource",
    # Errors
    "ConfigurationError",
    "ErrorContext",
    "HookOrderError",
    "LifecycleError",
    "LoomError",
    "MixedKeysError",
    "MountError",
]
