"""
Positional hooks runtime.

Each component instance owns a ``HookRuntime``: an ordered list of cells
indexed by call order. ``begin_render()`` resets the call index; every hook
call consumes the next index and either creates the cell there (first render)
or returns the existing one. The sequence of cell kinds must be the same on
every render.

Hooks can be called on the runtime directly, through a ``RenderContext``, or
via the module-level functions (``use_state`` and friends), which resolve the
runtime of the component currently rendering.

Example:
    def Counter(ctx):
        count, set_count = ctx.use_state(0)
        ctx.use_effect(lambda: print("count is", count), [count])
        return h("button", {"onclick": lambda e: set_count(count + 1)}, count)
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, Generic, TypeVar

from loom.errors import (
    ConfigurationError,
    ErrorContext,
    HookOrderError,
    LoomError,
    make_hook_order_error,
)
from loom.logging import get_hooks_logger, log_with_context
from loom.query import QueryResult, QuerySnapshot

if TYPE_CHECKING:
    from loom.component import Component

logger = get_hooks_logger()

T = TypeVar("T")

Deps = Sequence[Any] | None
Cleanup = Callable[[], Any]


SCALARS = (str, int, float, complex, bytes)


def same_value(a: Any, b: Any) -> bool:
    """
    Identity for objects, value equality for immutable scalars.

    NaN is the same value as NaN.
    """
    if a is b:
        return True
    if type(a) is not type(b) or not isinstance(a, SCALARS):
        return False
    if a == b:
        return True
    return a != a and b != b


def deps_changed(prev: Deps, next: Deps) -> bool:
    """
    Compare two dependency lists entry by entry with ``same_value``.

    ``None`` on either side means "always changed".
    """
    if next is None or prev is None:
        return True
    if len(prev) != len(next):
        return True
    return not all(same_value(a, b) for a, b in zip(prev, next))


# =============================================================================
# Refs and contexts
# =============================================================================


class Ref(Generic[T]):
    """Mutable box returned by ``use_ref``; stable for the instance lifetime."""

    __slots__ = ("current",)

    def __init__(self, current: T) -> None:
        self.current = current

    def __repr__(self) -> str:
        return f"Ref({self.current!r})"


class Context(Generic[T]):
    """A value that providers make visible to components mounted below them."""

    def __init__(self, default: T, name: str | None = None) -> None:
        self.default = default
        self.name = name or "Context"

    def __repr__(self) -> str:
        return f"<Context {self.name}>"


def create_context(default: Any = None, name: str | None = None) -> Context[Any]:
    """Create a context with a default value."""
    return Context(default, name)


# =============================================================================
# Cells
# =============================================================================


@dataclass
class StateCell:
    kind: ClassVar[str] = "state"
    value: Any = None
    setter: Callable[[Any], None] | None = None


@dataclass
class RefCell:
    kind: ClassVar[str] = "ref"
    box: Ref[Any] = field(default_factory=lambda: Ref(None))


@dataclass
class MemoCell:
    kind: ClassVar[str] = "memo"
    value: Any = None
    deps: Deps = None


@dataclass
class EffectCell:
    kind: ClassVar[str] = "effect"
    deps: Deps = None
    cleanup: Cleanup | None = None
    committed: bool = False


@dataclass
class ContextCell:
    kind: ClassVar[str] = "context"
    context: Context[Any] | None = None


@dataclass
class QueryCell:
    kind: ClassVar[str] = "query"
    key: Any = None
    unsubscribe: Callable[[], None] | None = None
    subscribed: bool = False


Cell = StateCell | RefCell | MemoCell | EffectCell | ContextCell | QueryCell

C = TypeVar("C", StateCell, RefCell, MemoCell, EffectCell, ContextCell, QueryCell)


@dataclass
class EffectDescriptor:
    """An effect staged by a render, applied by the next effect flush."""

    create: Callable[[], Any]
    deps: Deps
    changed: bool


# =============================================================================
# Hook runtime
# =============================================================================


_current: ContextVar[HookRuntime | None] = ContextVar("loom_current_hooks", default=None)


class HookRuntime:
    """Per-instance hook storage and effect bookkeeping."""

    def __init__(self, owner: Component) -> None:
        self.owner = owner
        self.cells: list[Cell] = []
        self.index = 0
        self.staged: dict[int, EffectDescriptor] = {}
        self.pending: dict[int, EffectDescriptor] = {}
        self.committed_length: int | None = None
        self.torn_down = False
        self.needs_flush = False

    @property
    def name(self) -> str:
        return type(self.owner).__name__

    # Render bracket

    def begin_render(self) -> None:
        self.index = 0
        self.staged = {}

    def end_render(self) -> None:
        """Validate the hook count against the last committed render."""
        if self.committed_length is not None and self.index < self.committed_length:
            self._violation(
                self.index,
                ErrorContext(
                    component=self.name,
                    detail=f"rendered {self.index} hooks, previous render had {self.committed_length}",
                ),
            )
            self._drop_cells(self.index)
        self.committed_length = self.index

    def abort_render(self) -> None:
        """Forget effects staged by a render that raised."""
        self.staged = {}

    @contextmanager
    def rendering(self) -> Iterator[HookRuntime]:
        """Make this runtime current for the module-level hook functions."""
        token = _current.set(self)
        try:
            yield self
        finally:
            _current.reset(token)

    # Cell access

    def _cell(self, cls: type[C], factory: Callable[[], C]) -> tuple[C, bool]:
        """Return the cell at the next index and whether it was just created."""
        index = self.index
        self.index += 1

        if index >= len(self.cells):
            if self.committed_length is not None:
                self._violation(
                    index,
                    ErrorContext(
                        component=self.name,
                        hook_index=index,
                        detail=f"{cls.kind} hook added, previous render had {self.committed_length}",
                    ),
                )
            cell = factory()
            self.cells.append(cell)
            return cell, True

        cell = self.cells[index]
        if not isinstance(cell, cls):
            error = make_hook_order_error(self.name, index, cell.kind, cls.kind)
            self._violation(index, error.context, error)
            self._dispose(cell)
            cell = factory()
            self.cells[index] = cell
            return cell, True
        return cell, False

    def _violation(
        self,
        index: int,
        context: ErrorContext | None,
        error: HookOrderError | None = None,
    ) -> None:
        if error is None:
            error = HookOrderError("hooks must be called in the same order on every render", context)
        if self.owner.runtime.config.hook_order == "raise":
            raise error
        log_with_context(
            logger,
            logging.WARNING,
            f"Hook order violation in {self.name}, reinitializing: {error}",
            component=self.name,
            hook_index=index,
        )

    def _drop_cells(self, length: int) -> None:
        for cell in self.cells[length:]:
            self._dispose(cell)
        del self.cells[length:]

    def _dispose(self, cell: Cell) -> None:
        if isinstance(cell, EffectCell) and cell.cleanup is not None:
            self._run_cleanup(cell)
        elif isinstance(cell, QueryCell) and cell.unsubscribe is not None:
            cell.unsubscribe()
            cell.unsubscribe = None

    # Hooks

    def use_state(self, initial: Any = None) -> tuple[Any, Callable[[Any], None]]:
        """Local state; a callable ``initial`` is invoked once."""
        cell, _ = self._cell(
            StateCell, lambda: StateCell(value=initial() if callable(initial) else initial)
        )
        if cell.setter is None:
            cell.setter = self._make_setter(cell)
        return cell.value, cell.setter

    def _make_setter(self, cell: StateCell) -> Callable[[Any], None]:
        def set_value(next_value: Any) -> None:
            if self.torn_down:
                return
            value = next_value(cell.value) if callable(next_value) else next_value
            if same_value(value, cell.value):
                return
            cell.value = value
            self.owner.request_update()

        return set_value

    def use_ref(self, initial: Any = None) -> Ref[Any]:
        cell, _ = self._cell(RefCell, lambda: RefCell(box=Ref(initial)))
        return cell.box

    def use_memo(self, factory: Callable[[], T], deps: Deps = None) -> T:
        cell, created = self._cell(MemoCell, MemoCell)
        if created or deps_changed(cell.deps, deps):
            cell.value = factory()
            cell.deps = None if deps is None else tuple(deps)
        return cell.value

    def use_callback(self, fn: Callable[..., Any], deps: Deps = None) -> Callable[..., Any]:
        return self.use_memo(lambda: fn, deps)

    def use_effect(self, create: Callable[[], Any], deps: Deps = None) -> None:
        """Stage ``create`` to run after this render's patch lands."""
        index = self.index
        cell, created = self._cell(EffectCell, EffectCell)
        frozen = None if deps is None else tuple(deps)
        changed = created or not cell.committed or deps_changed(cell.deps, frozen)
        self.staged[index] = EffectDescriptor(create=create, deps=frozen, changed=changed)

    def use_context(self, context: Context[T]) -> T:
        cell, _ = self._cell(ContextCell, ContextCell)
        cell.context = context
        return self.owner.use_context(context)

    def use_query(self, key: Any, fetcher: Callable[[], Any] | None = None) -> QueryResult:
        """Subscribe to ``key`` on the runtime's query source."""
        source = self.owner.runtime.query_source
        if source is None:
            raise ConfigurationError(
                "use_query needs a query source; pass Runtime(query_source=...)",
                ErrorContext(component=self.name, hook_index=self.index),
            )
        cell, _ = self._cell(QueryCell, QueryCell)

        if not cell.subscribed or cell.key != key:
            if cell.unsubscribe is not None:
                cell.unsubscribe()
            cell.key = key
            cell.unsubscribe = source.subscribe(key, self._on_snapshot)
            cell.subscribed = True
            snapshot = source.get_snapshot(key)
            if fetcher is not None and (snapshot is None or snapshot.data is None):
                self.owner.runtime.scheduler.defer(lambda: source.fetch(key, fetcher))

        snapshot = source.get_snapshot(key) or QuerySnapshot()
        return QueryResult(
            data=snapshot.data,
            error=snapshot.error,
            updated_at=snapshot.updated_at,
            refetch=lambda: source.refetch(key),
            invalidate=lambda: source.invalidate(key),
        )

    def _on_snapshot(self, snapshot: QuerySnapshot | None = None) -> None:
        if not self.torn_down:
            self.owner.request_update()

    # Effects

    def commit(self) -> bool:
        """
        Hand the staged effects of a successfully patched render to the next flush.

        The newest commit replaces any earlier unflushed one, since its
        descriptors are compared against the same committed deps. Returns True
        when at least one effect has to run.
        """
        self.pending, self.staged = self.staged, {}
        self.needs_flush = any(descriptor.changed for descriptor in self.pending.values())
        return self.needs_flush

    def flush_effects(self) -> None:
        """
        Apply staged effects: every stale cleanup first, then every new create.

        Unchanged effects keep their previous cleanup.
        """
        if self.torn_down or not self.needs_flush:
            return
        self.needs_flush = False
        staged, self.pending = self.pending, {}

        for index, descriptor in staged.items():
            cell = self.cells[index] if index < len(self.cells) else None
            if descriptor.changed and isinstance(cell, EffectCell) and cell.committed:
                self._run_cleanup(cell)

        for index, descriptor in staged.items():
            if not descriptor.changed or index >= len(self.cells):
                continue
            cell = self.cells[index]
            if not isinstance(cell, EffectCell):
                continue
            cell.deps = descriptor.deps
            cell.committed = True
            try:
                result = descriptor.create()
            except Exception as exc:
                log_with_context(
                    logger,
                    logging.ERROR,
                    f"Effect #{index} of {self.name} raised: {exc}",
                    exc_info=exc,
                    component=self.name,
                    hook_index=index,
                )
                continue
            cell.cleanup = result if callable(result) else None

    def _run_cleanup(self, cell: EffectCell) -> None:
        cleanup, cell.cleanup = cell.cleanup, None
        if cleanup is None:
            return
        try:
            cleanup()
        except Exception as exc:
            log_with_context(
                logger,
                logging.ERROR,
                f"Effect cleanup of {self.name} raised: {exc}",
                exc_info=exc,
                component=self.name,
            )

    # Teardown

    def teardown(self) -> None:
        """Run every remaining cleanup and drop query subscriptions."""
        self.torn_down = True
        self.staged = {}
        self.pending = {}
        for cell in self.cells:
            self._dispose(cell)

    def clear(self) -> None:
        self.cells = []
        self.committed_length = None
        self.index = 0


# =============================================================================
# Module-level hooks
# =============================================================================


def current_hooks() -> HookRuntime:
    """Hook runtime of the component currently rendering."""
    runtime = _current.get()
    if runtime is None:
        raise LoomError("hooks can only be called while a component is rendering")
    return runtime


def use_state(initial: Any = None) -> tuple[Any, Callable[[Any], None]]:
    return current_hooks().use_state(initial)


def use_ref(initial: Any = None) -> Ref[Any]:
    return current_hooks().use_ref(initial)


def use_memo(factory: Callable[[], T], deps: Deps = None) -> T:
    return current_hooks().use_memo(factory, deps)


def use_callback(fn: Callable[..., Any], deps: Deps = None) -> Callable[..., Any]:
    return current_hooks().use_callback(fn, deps)


def use_effect(create: Callable[[], Any], deps: Deps = None) -> None:
    current_hooks().use_effect(create, deps)


def use_context(context: Context[T]) -> T:
    return current_hooks().use_context(context)


def use_query(key: Any, fetcher: Callable[[], Any] | None = None) -> QueryResult:
    return current_hooks().use_query(key, fetcher)
