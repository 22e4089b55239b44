"""Unit tests for developer diagnostics."""

from __future__ import annotations

import io
import logging
from typing import Any

import pytest
from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from loom.devtools import dump_tree, enable_error_overlay, hook_table, print_tree, timed
from loom.functional import RenderContext, define_component
from loom.host.memory import HostElement
from loom.runtime import Runtime


def recording_console() -> Console:
    return Console(file=io.StringIO(), record=True, width=100, color_system=None)


class TestTreeDump:
    def test_dump_tree(self, container: HostElement) -> None:
        container.inner_html = '<ul class="x"><li>a</li></ul>'
        tree = dump_tree(container)
        assert isinstance(tree, Tree)
        console = recording_console()
        console.print(tree)
        output = console.export_text()
        assert '<div id="app">' in output
        assert '<ul class="x">' in output
        assert "'a'" in output

    def test_print_tree(self, container: HostElement) -> None:
        container.inner_html = "<p disabled>x</p>"
        console = recording_console()
        print_tree(container, console=console)
        assert "<p disabled>" in console.export_text()


class TestHookTable:
    def test_one_row_per_cell(self, runtime: Runtime, container: HostElement) -> None:
        def Widget(ctx: RenderContext) -> Any:
            ctx.use_state(3)
            ctx.use_ref("r")
            ctx.use_effect(lambda: None, [])
            return None

        instance = define_component(Widget)(runtime=runtime).mount(container)
        table = hook_table(instance)
        assert isinstance(table, Table)
        assert table.row_count == 3

        console = recording_console()
        console.print(table)
        output = console.export_text()
        assert "Widget hooks" in output
        assert "state" in output
        assert "'r'" in output


class TestTimed:
    def test_elapsed_recorded_and_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = logging.getLogger("loom.devtools_test")
        with caplog.at_level(logging.DEBUG, logger="loom.devtools_test"):
            with timed("render Counter", logger) as result:
                pass
        assert result["elapsed_ms"] >= 0
        assert "render Counter took" in caplog.text


class TestErrorOverlay:
    def test_prints_reported_errors(self, runtime: Runtime) -> None:
        console = recording_console()
        disable = enable_error_overlay(runtime, console)
        runtime.errors.report(ValueError("bad input"))
        output = console.export_text()
        assert "Loom Error" in output
        assert "ValueError: bad input" in output

        disable()
        runtime.errors.report(KeyError("quiet"))
        assert "quiet" not in console.export_text()
