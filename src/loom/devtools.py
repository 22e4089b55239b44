"""
Developer diagnostics: tree dumps, hook tables, render timing and an error overlay.

Uses rich for terminal output.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.panel import Panel
from rich.style import Style
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from loom.host.adapter import HostAdapter, HostNode
from loom.logging import get_runtime_logger

if TYPE_CHECKING:
    from loom.component import Component
    from loom.runtime import Runtime

STYLES = {
    "tag": Style(color="bright_cyan", bold=True),
    "attr": Style(color="yellow"),
    "text": Style(color="bright_black"),
    "error": Style(color="red", bold=True),
    "muted": Style(color="bright_black"),
}


def _label(adapter: HostAdapter, node: HostNode) -> Text:
    if not adapter.is_element(node):
        return Text(repr(adapter.get_text(node)), style=STYLES["text"])
    label = Text(f"<{adapter.tag_of(node)}", style=STYLES["tag"])
    for name, value in adapter.attributes_of(node).items():
        label.append(f" {name}", style=STYLES["attr"])
        if value:
            label.append(f'="{value}"', style=STYLES["attr"])
    label.append(">", style=STYLES["tag"])
    return label


def dump_tree(node: HostNode, adapter: HostAdapter | None = None) -> Tree:
    """Build a rich ``Tree`` of the host subtree rooted at ``node``."""
    if adapter is None:
        from loom.host.memory import MemoryHost

        adapter = MemoryHost(node.document)

    def build(branch: Tree, current: HostNode) -> None:
        for child in adapter.children_of(current):
            sub = branch.add(_label(adapter, child))
            if adapter.is_element(child):
                build(sub, child)

    tree = Tree(_label(adapter, node))
    if adapter.is_element(node):
        build(tree, node)
    return tree


def print_tree(
    node: HostNode,
    adapter: HostAdapter | None = None,
    console: Console | None = None,
) -> None:
    (console or Console()).print(dump_tree(node, adapter))


def hook_table(component: Component) -> Table:
    """One row per hook cell of ``component``, in call order."""
    table = Table(title=f"{component.name} hooks", show_lines=False)
    table.add_column("#", justify="right", style=STYLES["muted"])
    table.add_column("Kind", style=STYLES["tag"])
    table.add_column("Value")
    for index, cell in enumerate(component.hooks.cells):
        table.add_row(str(index), cell.kind, _describe_cell(cell))
    return table


def _describe_cell(cell: Any) -> str:
    if cell.kind == "state":
        return repr(cell.value)
    if cell.kind == "ref":
        return repr(cell.box.current)
    if cell.kind == "memo":
        return f"{cell.value!r} deps={cell.deps!r}"
    if cell.kind == "effect":
        cleanup = "cleanup" if cell.cleanup is not None else "no cleanup"
        return f"deps={cell.deps!r} {cleanup}"
    if cell.kind == "context":
        return repr(cell.context)
    return f"key={cell.key!r}"


@contextmanager
def timed(label: str, logger: logging.Logger | None = None) -> Iterator[dict[str, float]]:
    """
    Log how long the block took, in milliseconds, at DEBUG.

    The yielded dict receives ``elapsed_ms`` when the block exits.
    """
    log = logger or get_runtime_logger()
    result: dict[str, float] = {}
    start = time.perf_counter()
    try:
        yield result
    finally:
        result["elapsed_ms"] = (time.perf_counter() - start) * 1000
        log.debug("%s took %.2fms", label, result["elapsed_ms"])


def enable_error_overlay(runtime: Runtime, console: Console | None = None) -> Callable[[], None]:
    """
    Print errors reported on the runtime's error channel as a red panel.

    Returns a function that disables the overlay.
    """
    out = console or Console(stderr=True)

    def show(error: BaseException) -> None:
        out.print(
            Panel(
                Text(f"{type(error).__name__}: {error}", style=STYLES["error"]),
                title="Loom Error",
                border_style="red",
            )
        )

    return runtime.errors.subscribe(show)
