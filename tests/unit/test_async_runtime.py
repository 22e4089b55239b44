"""Tests for a runtime whose microtask queue is bound to an asyncio loop."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from loom.component import Component
from loom.hooks import use_effect
from loom.runtime import Runtime
from loom.testing import mount
from loom.vnode import h


class Ticker(Component):
    initial_state = {"ticks": 0}

    def view(self) -> Any:
        return h("span", None, self.state["ticks"])

    def tick(self) -> None:
        self.set_state(lambda s: {"ticks": s["ticks"] + 1})


class TestLoopBoundQueue:
    @pytest.mark.asyncio
    async def test_flush_posted_to_loop(self) -> None:
        runtime = Runtime(loop=asyncio.get_running_loop())
        mounted = mount(Ticker, runtime=runtime)
        mounted.instance.tick()
        mounted.instance.tick()
        assert mounted.container.text_content == "0"
        assert not runtime.queue.idle

        await runtime.settle_async()
        assert mounted.container.text_content == "2"
        assert mounted.instance.render_count == 2
        assert runtime.queue.idle

    @pytest.mark.asyncio
    async def test_updates_from_tasks_coalesce(self) -> None:
        runtime = Runtime(loop=asyncio.get_running_loop())
        mounted = mount(Ticker, runtime=runtime)

        async def worker() -> None:
            runtime.batch(mounted.instance.tick)

        await asyncio.gather(worker(), worker(), worker())
        await runtime.settle_async()
        assert mounted.container.text_content == "3"
        assert runtime.scheduler.flush_count <= 3

    @pytest.mark.asyncio
    async def test_effects_run_after_flush(self) -> None:
        runtime = Runtime(loop=asyncio.get_running_loop())
        seen: list[str] = []

        class Watcher(Ticker):
            def view(self) -> Any:
                ticks = self.state["ticks"]
                use_effect(lambda: seen.append(f"ticks={ticks}"), [ticks])
                return super().view()

        mounted = mount(Watcher, runtime=runtime)
        mounted.instance.tick()
        await runtime.settle_async()
        assert seen == ["ticks=0", "ticks=1"]

    @pytest.mark.asyncio
    async def test_error_in_posted_callback_reported(self) -> None:
        runtime = Runtime(loop=asyncio.get_running_loop())
        reported: list[BaseException] = []
        runtime.errors.subscribe(reported.append)

        def boom() -> None:
            raise RuntimeError("posted failure")

        runtime.scheduler.defer(boom)
        await runtime.settle_async()
        assert [str(error) for error in reported] == ["posted failure"]


class TestUnboundQueue:
    @pytest.mark.asyncio
    async def test_settle_async_drains_inline(self, runtime: Runtime) -> None:
        mounted = mount(Ticker, runtime=runtime)
        mounted.instance.tick()
        await runtime.settle_async()
        assert mounted.container.text_content == "1"
