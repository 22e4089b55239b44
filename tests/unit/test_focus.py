"""Unit tests for focus and selection preservation."""

from __future__ import annotations

from typing import Any

from loom.component import Component
from loom.focus import FocusSnapshot, capture_focus, restore_focus
from loom.host.adapter import SelectionRange
from loom.host.memory import Event, HostElement, MemoryHost
from loom.runtime import Runtime
from loom.vnode import h


class SearchBox(Component):
    initial_state = {"query": "hello", "wrapper": "div", "hits": 0}

    def view(self) -> Any:
        return h(
            self.state["wrapper"],
            None,
            h("input", {"id": "q", "name": "query", "value": self.state["query"]}),
            h("span", None, f"{self.state['hits']} hits"),
        )


class TestCapture:
    def test_nothing_focused(self, host: MemoryHost, container: HostElement) -> None:
        assert capture_focus(host, container) is None

    def test_root_focus_not_captured(self, host: MemoryHost, container: HostElement) -> None:
        container.focus()
        assert capture_focus(host, container) is None

    def test_snapshot_fields(self, host: MemoryHost, container: HostElement) -> None:
        container.inner_html = '<input id="a" name="b">'
        field = container.children[0]
        field.set_property("value", "abcd")
        field.focus()
        field.set_selection_range(1, 3, "forward")
        snapshot = capture_focus(host, container)
        assert snapshot == FocusSnapshot(
            node=field, id="a", name="b", selection=SelectionRange(1, 3, "forward")
        )


class TestRestoreAcrossRenders:
    def test_selection_restored_after_value_patch(
        self, runtime: Runtime, container: HostElement
    ) -> None:
        instance = SearchBox(runtime=runtime).mount(container)
        field = container.query("#q")
        field.focus()
        field.set_selection_range(1, 2)
        instance.set_state({"query": "hello!", "hits": 3})
        runtime.settle()
        assert container.query("#q") is field
        assert field.get_property("value") == "hello!"
        assert runtime.host.document.active_element is field
        assert (field.selection_start, field.selection_end) == (1, 2)

    def test_focus_follows_replacement_by_id(
        self, runtime: Runtime, container: HostElement
    ) -> None:
        instance = SearchBox(runtime=runtime).mount(container)
        old = container.query("#q")
        old.focus()
        old.set_selection_range(2, 4)
        instance.set_state({"wrapper": "section"})
        runtime.settle()
        new = container.query("#q")
        assert new is not old
        assert runtime.host.document.active_element is new
        assert (new.selection_start, new.selection_end) == (2, 4)

    def test_focus_follows_replacement_by_name(
        self, host: MemoryHost, container: HostElement
    ) -> None:
        container.inner_html = '<input name="email">'
        old = container.children[0]
        old.focus()
        snapshot = capture_focus(host, container)
        container.inner_html = '<form><input name="email"></form>'
        restored = restore_focus(host, container, snapshot)
        assert restored is container.query('[name="email"]')
        assert host.document.active_element is restored

    def test_no_candidate_leaves_focus_alone(
        self, host: MemoryHost, container: HostElement
    ) -> None:
        container.inner_html = "<textarea></textarea>"
        container.children[0].focus()
        snapshot = capture_focus(host, container)
        container.inner_html = "<p></p>"
        assert restore_focus(host, container, snapshot) is None
        assert host.document.active_element is None

    def test_selection_not_forced_while_composing(
        self, host: MemoryHost, container: HostElement
    ) -> None:
        container.inner_html = "<input>"
        field = container.children[0]
        field.set_property("value", "abcdef")
        field.focus()
        field.set_selection_range(1, 1)
        snapshot = capture_focus(host, container)
        field.dispatch_event(Event("compositionstart"))
        field.set_selection_range(4, 4)
        restore_focus(host, container, snapshot)
        assert (field.selection_start, field.selection_end) == (4, 4)

    def test_unfocused_render_does_not_steal_focus(
        self, runtime: Runtime, container: HostElement
    ) -> None:
        outside = runtime.host.create_element("input")
        runtime.host.document.body.append_child(outside)
        outside.focus()
        instance = SearchBox(runtime=runtime).mount(container)
        instance.set_state({"wrapper": "section"})
        runtime.settle()
        assert runtime.host.document.active_element is outside
