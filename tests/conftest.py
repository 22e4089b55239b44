"""Shared pytest fixtures for Loom tests."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from loom.config import RuntimeConfig
from loom.host.memory import HostElement, MemoryHost
from loom.reconciler.patch import Patcher
from loom.runtime import Runtime


@pytest.fixture
def config() -> RuntimeConfig:
    """Runtime config with contained render errors kept out of the log."""
    return RuntimeConfig(log_render_errors=False)


@pytest.fixture
def runtime(config: RuntimeConfig) -> Runtime:
    """An independent runtime with an unbound microtask queue."""
    return Runtime(config=config)


@pytest.fixture
def host(runtime: Runtime) -> MemoryHost:
    assert isinstance(runtime.host, MemoryHost)
    return runtime.host


@pytest.fixture
def container(host: MemoryHost) -> HostElement:
    """A ``<div id="app">`` attached to the document body."""
    element = host.create_element("div")
    element.set_attribute("id", "app")
    host.document.body.append_child(element)
    return element


@pytest.fixture
def patcher(runtime: Runtime) -> Patcher:
    return runtime.patcher


@pytest.fixture(autouse=True)
def _reset_default_runtime() -> Iterator[None]:
    yield
    Runtime.set_default(None)
