"""
Test helpers for components rendered into the in-memory host.

Example:
    mounted = mount(Counter, props={"start": 2}, runtime=runtime)
    fire(get_by_test_id(mounted.container, "inc"), "click")
    runtime.settle()
    assert mounted.container.text_content == "3"
    mounted.unmount()
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

from loom.component import Component
from loom.host.memory import Event, HostElement, MemoryHost, MutationRecorder
from loom.runtime import Runtime

C = TypeVar("C", bound=Component)
T = TypeVar("T")

__all__ = [
    "Mounted",
    "MutationRecorder",
    "Rendered",
    "act",
    "fire",
    "get_all_by_test_id",
    "get_by_test_id",
    "mount",
    "render_markup",
    "type_text",
]


def _document_host(runtime: Runtime) -> MemoryHost:
    if not isinstance(runtime.host, MemoryHost):
        raise TypeError("loom.testing helpers need a runtime backed by MemoryHost")
    return runtime.host


def _new_container(runtime: Runtime) -> HostElement:
    host = _document_host(runtime)
    container = host.create_element("div")
    host.document.body.append_child(container)
    return container


def _detach(container: HostElement) -> None:
    if container.parent is not None:
        container.parent.remove_child(container)


@dataclass
class Mounted:
    """A component mounted into a fresh container attached to the document body."""

    instance: Component
    container: HostElement
    runtime: Runtime

    def unmount(self) -> None:
        self.instance.unmount()
        _detach(self.container)


@dataclass
class Rendered:
    container: HostElement

    def unmount(self) -> None:
        _detach(self.container)
        self.container.clear()


def mount(
    component_cls: type[C],
    *,
    props: Mapping[str, Any] | None = None,
    state: Mapping[str, Any] | None = None,
    children: list[Any] | None = None,
    container: HostElement | None = None,
    runtime: Runtime | None = None,
) -> Mounted:
    """Instantiate ``component_cls`` and mount it into a new (or given) container."""
    runtime = runtime or Runtime.default()
    root = container if container is not None else _new_container(runtime)
    instance = component_cls(props=props, state=state, children=children, runtime=runtime)
    instance.mount(root)
    return Mounted(instance=instance, container=root, runtime=runtime)


def render_markup(markup: str = "", runtime: Runtime | None = None) -> Rendered:
    """Parse ``markup`` into a new container attached to the document body."""
    container = _new_container(runtime or Runtime.default())
    container.inner_html = markup
    return Rendered(container)


def fire(target: HostElement | None, event_type: str, **detail: Any) -> Event | None:
    """Dispatch a bubbling event at ``target``; returns the event, or None without a target."""
    if target is None:
        return None
    return target.dispatch_event(Event(event_type, bubbles=True, detail=dict(detail)))


def type_text(target: HostElement, text: str, *, replace: bool = False) -> None:
    """Focus ``target``, set its value as if typed, and fire ``input`` then ``change``."""
    target.focus()
    current = "" if replace else str(target.get_property("value") or "")
    target.set_property("value", current + text)
    fire(target, "input", value=current + text)
    fire(target, "change", value=current + text)


def act(fn: Callable[[], T], runtime: Runtime | None = None) -> T:
    """Run ``fn`` and settle the runtime so renders and effects have landed."""
    runtime = runtime or Runtime.default()
    result = fn()
    runtime.settle()
    return result


def get_by_test_id(container: HostElement, test_id: str) -> HostElement | None:
    if not test_id:
        return None
    return container.query(f'[data-testid="{test_id}"]')


def get_all_by_test_id(container: HostElement, test_id: str) -> list[HostElement]:
    if not test_id:
        return []
    return container.query_all(f'[data-testid="{test_id}"]')
