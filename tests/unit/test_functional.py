"""Unit tests for function components."""

from __future__ import annotations

from typing import Any

from loom.functional import FunctionComponent, RenderContext, define_component
from loom.hooks import create_context
from loom.host.memory import HostElement
from loom.runtime import Runtime
from loom.testing import fire, get_by_test_id, mount


def TodoList(ctx: RenderContext) -> Any:
    items, set_items = ctx.use_state(lambda: list(ctx.props.get("items", [])))

    def remove(event: Any) -> None:
        key = event.delegate_target.get_attribute("data-key")
        set_items(lambda current: [item for item in current if item != key])

    ctx.on("click", "li", remove)
    return ctx.h(
        "ul",
        {"data-testid": "todos"},
        [ctx.h("li", {"data-key": item}, item, key=item) for item in items],
    )


class TestDefineComponent:
    def test_creates_named_subclass(self) -> None:
        cls = define_component(TodoList)
        assert issubclass(cls, FunctionComponent)
        assert cls.__name__ == "TodoList"
        assert define_component(TodoList, name="Todos").__name__ == "Todos"

    def test_renders_and_updates(self, runtime: Runtime) -> None:
        mounted = mount(define_component(TodoList), props={"items": ["a", "b", "c"]}, runtime=runtime)
        todos = get_by_test_id(mounted.container, "todos")
        assert todos.text_content == "abc"
        c = todos.children[2]

        fire(todos.children[1], "click")
        runtime.settle()
        assert todos.text_content == "ac"
        assert todos.children[1] is c
        assert mounted.instance.events.listener_count == 1

    def test_handler_fires_once_after_many_renders(self, runtime: Runtime) -> None:
        mounted = mount(define_component(TodoList), props={"items": ["a", "b"]}, runtime=runtime)
        for _ in range(5):
            mounted.instance.request_update()
            runtime.settle()
        todos = get_by_test_id(mounted.container, "todos")
        fire(todos.children[0], "click")
        runtime.settle()
        assert todos.text_content == "b"
        assert len(mounted.container.listeners["click"]) == 1

    def test_direct_output(self, runtime: Runtime, container: HostElement) -> None:
        Hello = define_component(lambda ctx: f"<p>hello {ctx.props['name']}</p>", name="Hello")
        Hello(props={"name": "loom"}, runtime=runtime).mount(container)
        assert container.inner_html == "<p>hello loom</p>"

    def test_children_and_element(self, runtime: Runtime, container: HostElement) -> None:
        seen: list[Any] = []

        def Card(ctx: RenderContext) -> Any:
            seen.append(ctx.element)
            return ctx.h("section", None, ctx.children)

        define_component(Card)(children=["x", "y"], runtime=runtime).mount(container)
        assert container.inner_html == "<section>xy</section>"
        assert seen == [container]


class TestLifecycleCallbacks:
    def test_callbacks_receive_context(self, runtime: Runtime, container: HostElement) -> None:
        calls: list[Any] = []

        def Widget(ctx: RenderContext) -> Any:
            return {
                "render": lambda: ctx.h("div", None, "w"),
                "on_mount": lambda c: calls.append(("mount", c.element)),
                "on_unmount": lambda c: calls.append(("unmount", c is ctx)),
            }

        instance = define_component(Widget)(runtime=runtime).mount(container)
        instance.unmount()
        assert calls == [("mount", container), ("unmount", True)]

    def test_callbacks_captured_once(self, runtime: Runtime, container: HostElement) -> None:
        versions: list[int] = []
        renders: list[int] = []

        def Widget(ctx: RenderContext) -> Any:
            version = len(renders)
            renders.append(version)
            return {
                "render": lambda: ctx.text(version),
                "on_props_change": lambda prev, next: versions.append(version),
            }

        instance = define_component(Widget)(runtime=runtime).mount(container)
        instance.set_props({"a": 1})
        runtime.settle()
        instance.set_props({"a": 2})
        assert versions == [0, 0]

    def test_render_error_and_on_error(self, runtime: Runtime, container: HostElement) -> None:
        errors: list[str] = []

        def Fragile(ctx: RenderContext) -> Any:
            def render() -> Any:
                if ctx.props.get("fail"):
                    raise RuntimeError("fragile")
                return ctx.h("p", None, "ok")

            return {
                "render": render,
                "on_error": lambda error: errors.append(str(error)),
                "render_error": lambda error: ctx.h("p", {"class": "oops"}, str(error)),
            }

        instance = define_component(Fragile)(runtime=runtime).mount(container)
        instance.set_props({"fail": True})
        runtime.settle()
        assert errors == ["fragile"]
        assert container.inner_html == '<p class="oops">fragile</p>'


class TestRenderContextHelpers:
    def test_fragment_output(self, runtime: Runtime, container: HostElement) -> None:
        Pair = define_component(lambda ctx: ctx.fragment(ctx.h("dt", None, "k"), ctx.h("dd", None, "v")))
        Pair(runtime=runtime).mount(container)
        assert container.inner_html == "<dt>k</dt><dd>v</dd>"

    def test_find_and_context(self, runtime: Runtime, container: HostElement) -> None:
        locale = create_context("en")
        found: list[Any] = []

        def Localized(ctx: RenderContext) -> Any:
            ctx.provide_context(locale, "fr")
            ctx.use_effect(lambda: found.append(ctx.find("span")), [])
            return ctx.h("span", None, ctx.use_context(locale))

        define_component(Localized)(runtime=runtime).mount(container)
        runtime.settle()
        assert container.text_content == "fr"
        assert found == [container.query("span")]
        assert len(found) == 1
