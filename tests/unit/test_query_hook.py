"""Unit tests for use_query against a query source."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from loom.errors import ConfigurationError
from loom.functional import RenderContext, define_component
from loom.host.memory import HostElement
from loom.query import QueryResult, QuerySnapshot, QuerySource
from loom.runtime import Runtime
from loom.testing import mount


class FakeSource:
    """In-memory query source recording every call."""

    def __init__(self) -> None:
        self.snapshots: dict[Any, QuerySnapshot] = {}
        self.listeners: dict[Any, list[Callable[[QuerySnapshot], None]]] = {}
        self.fetchers: dict[Any, Callable[[], Any]] = {}
        self.calls: list[tuple[str, Any]] = []

    def subscribe(self, key: Any, listener: Callable[[QuerySnapshot], None]) -> Callable[[], None]:
        self.calls.append(("subscribe", key))
        self.listeners.setdefault(key, []).append(listener)

        def unsubscribe() -> None:
            self.calls.append(("unsubscribe", key))
            self.listeners[key].remove(listener)

        return unsubscribe

    def get_snapshot(self, key: Any) -> QuerySnapshot | None:
        return self.snapshots.get(key)

    def fetch(self, key: Any, fetcher: Callable[[], Any]) -> Any:
        self.calls.append(("fetch", key))
        self.fetchers[key] = fetcher
        self.publish(key, QuerySnapshot(data=fetcher(), updated_at=1.0))

    def refetch(self, key: Any) -> Any:
        self.calls.append(("refetch", key))
        return self.fetch(key, self.fetchers[key])

    def invalidate(self, key: Any) -> None:
        self.calls.append(("invalidate", key))

    def publish(self, key: Any, snapshot: QuerySnapshot) -> None:
        self.snapshots[key] = snapshot
        for listener in list(self.listeners.get(key, [])):
            listener(snapshot)


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def query_runtime(source: FakeSource) -> Runtime:
    return Runtime(query_source=source)


def User(ctx: RenderContext) -> Any:
    user_id = ctx.props["user_id"]
    result = ctx.use_query(("user", user_id), lambda: {"name": f"user-{user_id}"})
    ctx.use_ref(result).current = result
    if result.loading:
        return ctx.h("p", {"class": "loading"}, "Loading")
    return ctx.h("p", None, result.data["name"])


class TestUseQuery:
    def test_source_satisfies_protocol(self, source: FakeSource) -> None:
        assert isinstance(source, QuerySource)

    def test_loading_then_data(self, query_runtime: Runtime, source: FakeSource) -> None:
        mounted = mount(define_component(User), props={"user_id": 1}, runtime=query_runtime)
        assert mounted.container.text_content == "Loading"
        assert source.calls == [("subscribe", ("user", 1))]

        query_runtime.settle()
        assert mounted.container.text_content == "user-1"
        assert source.calls == [("subscribe", ("user", 1)), ("fetch", ("user", 1))]

    def test_cached_snapshot_skips_fetch(self, query_runtime: Runtime, source: FakeSource) -> None:
        source.snapshots[("user", 2)] = QuerySnapshot(data={"name": "cached"})
        mounted = mount(define_component(User), props={"user_id": 2}, runtime=query_runtime)
        query_runtime.settle()
        assert mounted.container.text_content == "cached"
        assert ("fetch", ("user", 2)) not in source.calls

    def test_key_change_resubscribes(self, query_runtime: Runtime, source: FakeSource) -> None:
        mounted = mount(define_component(User), props={"user_id": 1}, runtime=query_runtime)
        query_runtime.settle()
        mounted.instance.set_props({"user_id": 2})
        query_runtime.settle()
        assert mounted.container.text_content == "user-2"
        assert ("unsubscribe", ("user", 1)) in source.calls
        assert source.listeners[("user", 1)] == []
        assert len(source.listeners[("user", 2)]) == 1

    def test_same_key_subscribes_once(self, query_runtime: Runtime, source: FakeSource) -> None:
        mounted = mount(define_component(User), props={"user_id": 1}, runtime=query_runtime)
        query_runtime.settle()
        mounted.instance.request_update()
        query_runtime.settle()
        assert source.calls.count(("subscribe", ("user", 1))) == 1

    def test_published_snapshot_rerenders(
        self, query_runtime: Runtime, source: FakeSource
    ) -> None:
        mounted = mount(define_component(User), props={"user_id": 1}, runtime=query_runtime)
        query_runtime.settle()
        source.publish(("user", 1), QuerySnapshot(data={"name": "renamed"}))
        query_runtime.settle()
        assert mounted.container.text_content == "renamed"

    def test_result_delegates_refetch_and_invalidate(
        self, query_runtime: Runtime, source: FakeSource
    ) -> None:
        mounted = mount(define_component(User), props={"user_id": 1}, runtime=query_runtime)
        query_runtime.settle()
        result: QueryResult = mounted.instance.hooks.cells[1].box.current
        result.invalidate()
        result.refetch()
        assert source.calls[-3:] == [
            ("invalidate", ("user", 1)),
            ("refetch", ("user", 1)),
            ("fetch", ("user", 1)),
        ]

    def test_unmount_unsubscribes(self, query_runtime: Runtime, source: FakeSource) -> None:
        mounted = mount(define_component(User), props={"user_id": 1}, runtime=query_runtime)
        query_runtime.settle()
        mounted.unmount()
        assert source.calls[-1] == ("unsubscribe", ("user", 1))
        source.publish(("user", 1), QuerySnapshot(data={"name": "late"}))
        assert query_runtime.scheduler.pending == 0

    def test_missing_source_is_a_configuration_error(
        self, runtime: Runtime, container: HostElement
    ) -> None:
        def NeedsData(ctx: RenderContext) -> Any:
            ctx.use_query("anything")
            return "never"

        define_component(NeedsData)(runtime=runtime).mount(container)
        assert container.query(".loom-error") is not None
        assert "needs a query source" in container.text_content

    def test_configuration_error_raised_by_hook(self, runtime: Runtime) -> None:
        instance = define_component(User)(props={"user_id": 1}, runtime=runtime)
        with pytest.raises(ConfigurationError):
            instance.hooks.use_query("key")


class TestQueryResult:
    def test_loading(self) -> None:
        def noop() -> None:
            return None

        assert QueryResult(None, None, None, noop, noop).loading
        assert not QueryResult({}, None, None, noop, noop).loading
        assert not QueryResult(None, ValueError("x"), None, noop, noop).loading
