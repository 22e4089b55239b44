"""
Function components.

``define_component(setup)`` turns a plain function into a ``Component``
subclass. ``setup(ctx)`` runs on every render and returns either the output
directly or a mapping with a ``render`` callable plus optional lifecycle
callbacks (captured from the first successful render):

    def TodoList(ctx):
        items, set_items = ctx.use_state(list)
        ctx.on("click", ".remove", lambda e: ...)
        return {
            "render": lambda: ctx.h("ul", None, [ctx.h("li", None, i, key=i) for i in items]),
            "on_mount": lambda ctx: print("mounted"),
        }

    TodoList = define_component(TodoList)
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any

from loom.component import Component
from loom.hooks import Context, Deps, Ref
from loom.host.adapter import HostNode
from loom.query import QueryResult
from loom.vnode import fragment, h, text

LIFECYCLE_CALLBACKS = ("on_mount", "on_unmount", "on_props_change", "on_error", "render_error")

Setup = Callable[["RenderContext"], Any]


class RenderContext:
    """What a setup function sees: hooks, props, children, the host root and helpers."""

    h = staticmethod(h)
    text = staticmethod(text)
    fragment = staticmethod(fragment)

    def __init__(self, component: FunctionComponent) -> None:
        self.component = component

    @property
    def props(self) -> dict[str, Any]:
        return self.component.props

    @property
    def children(self) -> list[Any]:
        return self.component.children

    @property
    def element(self) -> HostNode | None:
        return self.component.host_root

    # Hooks

    def use_state(self, initial: Any = None) -> tuple[Any, Callable[[Any], None]]:
        return self.component.hooks.use_state(initial)

    def use_ref(self, initial: Any = None) -> Ref[Any]:
        return self.component.hooks.use_ref(initial)

    def use_memo(self, factory: Callable[[], Any], deps: Deps = None) -> Any:
        return self.component.hooks.use_memo(factory, deps)

    def use_callback(self, fn: Callable[..., Any], deps: Deps = None) -> Callable[..., Any]:
        return self.component.hooks.use_callback(fn, deps)

    def use_effect(self, create: Callable[[], Any], deps: Deps = None) -> None:
        self.component.hooks.use_effect(create, deps)

    def use_context(self, context: Context[Any]) -> Any:
        return self.component.hooks.use_context(context)

    def use_query(self, key: Any, fetcher: Callable[[], Any] | None = None) -> QueryResult:
        return self.component.hooks.use_query(key, fetcher)

    # Component helpers

    def on(self, event: str, selector: Any = None, handler: Any = None) -> RenderContext:
        self.component.on(event, selector, handler)
        return self

    def off(self, event: str, selector: str | None = None) -> RenderContext:
        self.component.off(event, selector)
        return self

    def find(self, selector: str) -> HostNode | None:
        return self.component.find(selector)

    def find_all(self, selector: str) -> list[HostNode]:
        return self.component.find_all(selector)

    def provide_context(self, context: Context[Any], value: Any) -> None:
        self.component.provide_context(context, value)


class FunctionComponent(Component):
    """Component whose render runs a setup function."""

    setup: Setup
    evaluate_on_hydrate = True

    def __init__(
        self,
        props: Mapping[str, Any] | None = None,
        state: Mapping[str, Any] | None = None,
        children: Iterable[Any] | None = None,
        **kwargs: Any,
    ) -> None:
        self.ctx = RenderContext(self)
        self.callbacks: dict[str, Callable[..., Any]] = {}
        self._captured = False
        super().__init__(props, state, children, **kwargs)

    def view(self) -> Any:
        result = type(self).setup(self.ctx)
        if not isinstance(result, Mapping):
            return result
        render = result.get("render")
        output = render() if callable(render) else render
        if not self._captured:
            self.callbacks = {
                name: result[name] for name in LIFECYCLE_CALLBACKS if callable(result.get(name))
            }
            self._captured = True
        return output

    def on_mount(self) -> None:
        if "on_mount" in self.callbacks:
            self.callbacks["on_mount"](self.ctx)

    def on_unmount(self) -> None:
        if "on_unmount" in self.callbacks:
            self.callbacks["on_unmount"](self.ctx)

    def on_props_change(self, prev: dict[str, Any], next: dict[str, Any]) -> None:
        if "on_props_change" in self.callbacks:
            self.callbacks["on_props_change"](prev, next)

    def on_error(self, error: BaseException) -> None:
        if "on_error" in self.callbacks:
            self.callbacks["on_error"](error)

    def error_renderer(self) -> Callable[[BaseException], Any] | None:
        return self.callbacks.get("render_error")


def define_component(setup: Setup, name: str | None = None) -> type[FunctionComponent]:
    """Create a ``Component`` subclass that renders by calling ``setup(ctx)``."""
    cls_name = name or getattr(setup, "__name__", "FunctionComponent")
    return type(cls_name, (FunctionComponent,), {"setup": staticmethod(setup)})
