"""
Component lifecycle wrapper.

A ``Component`` owns a host root, its state and props, a hooks runtime and a
set of delegated event rules. Subclasses implement ``view()``; its output
(VNodes, a list, ``None`` or a markup string) is reconciled into the host
root on every render.

Lifecycle:
    constructed -> mounted (``mount`` or ``hydrate``) -> unmounted (terminal)

Example:
    >>> class Counter(Component):
    ...     initial_state = {"count": 0}
    ...
    ...     def view(self):
    ...         return h("button", {"onclick": self.increment}, self.state["count"])
    ...
    ...     def increment(self, event):
    ...         self.set_state(lambda s: {"count": s["count"] + 1})
    >>>
    >>> Counter().mount("#app")
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any, ClassVar

from loom.errors import ErrorContext, LifecycleError, MountError
from loom.events import EventDelegator, Handler
from loom.focus import capture_focus, restore_focus
from loom.hooks import Context, HookRuntime
from loom.host.adapter import HostNode
from loom.logging import get_component_logger, log_with_context
from loom.markup import markup_to_vnode
from loom.reconciler.patch import release
from loom.runtime import Runtime
from loom.vnode import Element, Fragment, Text, VNode, h, to_vnode

logger = get_component_logger()

Partial = Mapping[str, Any] | Callable[[dict[str, Any]], Mapping[str, Any] | None] | None


class Component:
    """Base class for stateful components."""

    # Deep-copied into each instance
    initial_state: ClassVar[Mapping[str, Any]] = {}
    default_props: ClassVar[Mapping[str, Any]] = {}

    # Set by subclasses that run their render function during hydration
    evaluate_on_hydrate: ClassVar[bool] = False

    def __init__(
        self,
        props: Mapping[str, Any] | None = None,
        state: Mapping[str, Any] | None = None,
        children: Iterable[Any] | None = None,
        *,
        runtime: Runtime | None = None,
    ) -> None:
        self.runtime = runtime or Runtime.default()
        self.props: dict[str, Any] = {**self.default_props, **(props or {})}
        self.state: dict[str, Any] = {**copy.deepcopy(dict(self.initial_state)), **(state or {})}
        self.children: list[Any] = list(children or [])

        self.host_root: HostNode | None = None
        self.last_output: VNode | None = None
        self.last_markup: str | None = None
        self.mounted = False
        self.rendering = False
        self.unmounted = False
        self.render_count = 0

        self.hooks = HookRuntime(self)
        self.events = EventDelegator(self.runtime.host)
        self._provided: dict[Context[Any], Any] = {}
        self._pending_state: list[Partial] = []
        self._pending_props: list[Partial] = []

        self._call("on_create")

    def __repr__(self) -> str:
        status = "unmounted" if self.unmounted else "mounted" if self.mounted else "new"
        return f"<{self.name} {status}>"

    @property
    def name(self) -> str:
        return type(self).__name__

    @property
    def element(self) -> HostNode | None:
        return self.host_root

    # =========================================================================
    # Overridables
    # =========================================================================

    def view(self) -> Any:
        """Return this component's output. Called on every render."""
        return None

    def on_create(self) -> None:
        pass

    def on_mount(self) -> None:
        pass

    def on_unmount(self) -> None:
        pass

    def on_state_change(self, prev: dict[str, Any], next: dict[str, Any]) -> None:
        pass

    def on_props_change(self, prev: dict[str, Any], next: dict[str, Any]) -> None:
        pass

    def on_error(self, error: BaseException) -> None:
        pass

    def error_renderer(self) -> Callable[[BaseException], Any] | None:
        """Fallback renderer for failed renders; subclasses define ``render_error``."""
        renderer = getattr(self, "render_error", None)
        return renderer if callable(renderer) else None

    def _call(self, callback: str, *args: Any) -> None:
        try:
            getattr(self, callback)(*args)
        except Exception as exc:
            log_with_context(
                logger,
                logging.ERROR,
                f"{self.name}.{callback} raised: {exc}",
                exc_info=exc,
                component=self.name,
                callback=callback,
            )

    # =========================================================================
    # Mounting
    # =========================================================================

    def mount(
        self,
        target: HostNode | str,
        *,
        props: Mapping[str, Any] | None = None,
        state: Mapping[str, Any] | None = None,
        children: Iterable[Any] | None = None,
    ) -> Component:
        """Render into ``target`` (a host element or a selector), replacing its content."""
        host = self._bind(target, props, state, children)
        adapter = self.runtime.host
        for child in adapter.children_of(host):
            adapter.remove_child(host, child)

        self.render()
        self.events.bind(host)
        self.mounted = True
        logger.debug("Mounted %s", self.name)
        self._call("on_mount")
        return self

    def hydrate(
        self,
        target: HostNode | str,
        *,
        props: Mapping[str, Any] | None = None,
        state: Mapping[str, Any] | None = None,
        children: Iterable[Any] | None = None,
    ) -> Component:
        """
        Adopt the markup already inside ``target`` without an initial patch.

        The existing host children become the committed tree, so a later
        render that produces the same markup mutates nothing.
        """
        host = self._bind(target, props, state, children)
        self.last_output = Fragment(
            children=[self._adopt(node) for node in self.runtime.host.children_of(host)]
        )

        if self.evaluate_on_hydrate:
            self.rendering = True
            try:
                self._evaluate()
                if self.hooks.commit():
                    self.runtime.scheduler.defer(self.hooks.flush_effects)
            except Exception as exc:
                self.hooks.abort_render()
                self._recover(exc, reset=False)
            finally:
                self.rendering = False
                self._apply_pending()

        self.events.bind(host)
        self.mounted = True
        logger.debug("Hydrated %s", self.name)
        self._call("on_mount")
        return self

    def _bind(
        self,
        target: HostNode | str,
        props: Mapping[str, Any] | None,
        state: Mapping[str, Any] | None,
        children: Iterable[Any] | None,
    ) -> HostNode:
        if self.unmounted:
            raise LifecycleError("cannot mount an unmounted component", ErrorContext(self.name))
        if self.mounted:
            raise LifecycleError("component is already mounted", ErrorContext(self.name))

        adapter = self.runtime.host
        host = adapter.resolve(target) if isinstance(target, str) else target
        if host is None or not adapter.is_element(host):
            error = MountError(
                "mount target not found",
                ErrorContext(component=self.name, detail=f"target {target!r}"),
            )
            logger.error(str(error))
            raise error

        if props:
            self.props.update(props)
        if state:
            self.state.update(state)
        if children is not None:
            self.children = list(children)
        self.host_root = host
        self.runtime.register(host, self)
        return host

    def _adopt(self, node: HostNode) -> VNode:
        adapter = self.runtime.host
        if not adapter.is_element(node):
            return Text(value=adapter.get_text(node), host_ref=node)
        attrs: dict[str, Any] = dict(adapter.attributes_of(node))
        return Element(
            tag=adapter.tag_of(node),
            attrs=attrs,
            children=[self._adopt(child) for child in adapter.children_of(node)],
            key=attrs.get(self.runtime.config.key_attribute),
            host_ref=node,
        )

    # =========================================================================
    # Rendering
    # =========================================================================

    def _evaluate(self) -> Any:
        self.hooks.begin_render()
        with self.hooks.rendering():
            output = self.view()
        self.hooks.end_render()
        return output

    def render(self) -> None:
        """Re-run ``view()`` and reconcile its output into the host root."""
        if self.host_root is None or self.unmounted or self.rendering:
            return

        adapter = self.runtime.host
        root = self.host_root
        self.rendering = True
        patching = False
        focus = capture_focus(adapter, root)
        try:
            output = self._evaluate()
            if isinstance(output, str):
                if output == self.last_markup and self.last_output is not None:
                    new = self.last_output
                else:
                    new = markup_to_vnode(output, self.runtime.config.key_attribute)
                markup: str | None = output
            else:
                new = to_vnode(output)
                markup = None

            patching = True
            self.runtime.patcher.patch(root, self.last_output, new)
            patching = False
            self.last_output = new
            self.last_markup = markup
            self.render_count += 1

            if self.hooks.commit():
                self.runtime.scheduler.defer(self.hooks.flush_effects)
            restore_focus(adapter, root, focus)
        except Exception as exc:
            self.hooks.abort_render()
            self._recover(exc, reset=patching)
        finally:
            self.rendering = False
            self._apply_pending()

    def _recover(self, error: BaseException, reset: bool) -> None:
        """Contain a render error: notify, then show fallback or placeholder content."""
        self._call("on_error", error)
        if self.runtime.config.log_render_errors:
            log_with_context(
                logger,
                logging.WARNING,
                f"Render of {self.name} failed: {error}",
                exc_info=error,
                component=self.name,
            )
        if reset:
            self._reset_host()

        renderer = self.error_renderer()
        try:
            if renderer is not None:
                output = renderer(error)
                if isinstance(output, str):
                    fallback = markup_to_vnode(output, self.runtime.config.key_attribute)
                else:
                    fallback = to_vnode(output)
            else:
                fallback = self._placeholder(error)
            self.runtime.patcher.patch(self.host_root, self.last_output, fallback)
        except Exception as fallback_error:
            logger.error("Error fallback of %s failed: %s", self.name, fallback_error)
            self._reset_host()
            fallback = self._placeholder(error)
            self.runtime.patcher.patch(self.host_root, None, fallback)
        self.last_output = fallback
        self.last_markup = None

    def _placeholder(self, error: BaseException) -> Element:
        config = self.runtime.config
        message = str(error) or type(error).__name__
        return h(
            "div",
            {"class": config.error_placeholder_class, "role": "alert"},
            f"{config.error_placeholder}: {message}",
        )

    def _reset_host(self) -> None:
        adapter = self.runtime.host
        root = self.host_root
        if root is not None:
            for child in adapter.children_of(root):
                adapter.remove_child(root, child)
        if self.last_output is not None:
            release(self.last_output)
        self.last_output = None
        self.last_markup = None

    # =========================================================================
    # Updates
    # =========================================================================

    def request_update(self) -> None:
        """Schedule a re-render on the runtime's scheduler."""
        if self.unmounted or self.host_root is None:
            return
        self.runtime.scheduler.mark_dirty(self)

    def set_state(self, partial: Partial) -> None:
        """Merge ``partial`` (or ``partial(state)``) into state and schedule a render."""
        if self.unmounted:
            return
        if self.rendering:
            self._pending_state.append(partial)
            return
        prev = dict(self.state)
        changes = partial(dict(self.state)) if callable(partial) else partial
        if changes is None:
            return
        self.state = {**self.state, **changes}
        self._call("on_state_change", prev, self.state)
        self.request_update()

    def set_props(self, partial: Partial) -> None:
        """Merge ``partial`` (or ``partial(props)``) into props and schedule a render."""
        if self.unmounted:
            return
        if self.rendering:
            self._pending_props.append(partial)
            return
        prev = dict(self.props)
        changes = partial(dict(self.props)) if callable(partial) else partial
        if changes is None:
            return
        self.props = {**self.props, **changes}
        self._call("on_props_change", prev, self.props)
        self.request_update()

    def set_children(self, children: Iterable[Any]) -> None:
        if self.unmounted:
            return
        self.children = list(children)
        self.request_update()

    def _apply_pending(self) -> None:
        states, self._pending_state = self._pending_state, []
        props, self._pending_props = self._pending_props, []
        for partial in states:
            self.set_state(partial)
        for partial in props:
            self.set_props(partial)

    # =========================================================================
    # Teardown
    # =========================================================================

    def unmount(self) -> None:
        """Tear down: cleanups, callbacks, listeners, hook cells, then the host subtree."""
        if self.unmounted:
            return
        self.runtime.scheduler.discard(self)
        self.hooks.teardown()
        self._call("on_unmount")
        self.events.clear()
        self.hooks.clear()
        root = self.host_root
        if root is not None:
            self._reset_host()
            self.runtime.unregister(root)
        self.host_root = None
        self._provided.clear()
        self._pending_state = []
        self._pending_props = []
        self.mounted = False
        self.unmounted = True
        logger.debug("Unmounted %s", self.name)

    # =========================================================================
    # Events, queries and context
    # =========================================================================

    def on(
        self,
        event: str,
        selector: str | Handler | None = None,
        handler: Handler | None = None,
    ) -> Component:
        """
        Register a delegated handler.

        ``on("click", ".item", fn)`` fires for clicks inside the nearest
        ``.item`` ancestor of the target; ``on("click", fn)`` fires for any
        click inside the root.
        """
        if callable(selector) and handler is None:
            selector, handler = None, selector
        if handler is None:
            raise TypeError("on() requires a handler")
        self.events.on(event, selector, handler)
        return self

    def off(self, event: str, selector: str | None = None) -> Component:
        self.events.off(event, selector)
        return self

    def find(self, selector: str) -> HostNode | None:
        if self.host_root is None:
            return None
        return self.runtime.host.query(self.host_root, selector)

    def find_all(self, selector: str) -> list[HostNode]:
        if self.host_root is None:
            return []
        return self.runtime.host.query_all(self.host_root, selector)

    def provide_context(self, context: Context[Any], value: Any) -> None:
        """Make ``value`` visible to components mounted inside this one's host subtree."""
        self._provided[context] = value

    def use_context(self, context: Context[Any]) -> Any:
        """Nearest provided value of ``context``, walking up from the host root."""
        adapter = self.runtime.host
        node = self.host_root
        while node is not None:
            instance = self.runtime.instance_at(node)
            if instance is not None and context in instance._provided:
                return instance._provided[context]
            node = adapter.parent_of(node)
        return context.default
