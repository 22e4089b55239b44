"""Unit tests for runtime configuration."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from loom.config import RuntimeConfig


class TestRuntimeConfig:
    def test_defaults(self) -> None:
        config = RuntimeConfig()
        assert config.hook_order == "raise"
        assert config.mixed_keys == "positional"
        assert config.error_placeholder == "Component Error"
        assert config.key_attribute == "data-key"
        assert "value" in config.live_properties
        assert config.log_render_errors is True

    def test_frozen(self) -> None:
        config = RuntimeConfig()
        with pytest.raises(ValidationError):
            config.hook_order = "warn"

    def test_rejects_unknown_policy(self) -> None:
        with pytest.raises(ValidationError):
            RuntimeConfig(hook_order="ignore")


class TestFromEnv:
    def test_reads_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOOM_HOOK_ORDER", "warn")
        monkeypatch.setenv("LOOM_MIXED_KEYS", "forbid")
        monkeypatch.setenv("LOOM_ERROR_PLACEHOLDER", "Oops")
        monkeypatch.setenv("LOOM_LOG_RENDER_ERRORS", "0")
        config = RuntimeConfig.from_env()
        assert config.hook_order == "warn"
        assert config.mixed_keys == "forbid"
        assert config.error_placeholder == "Oops"
        assert config.log_render_errors is False

    def test_empty_environment_gives_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ("LOOM_HOOK_ORDER", "LOOM_MIXED_KEYS", "LOOM_ERROR_PLACEHOLDER"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.delenv("LOOM_LOG_RENDER_ERRORS", raising=False)
        assert RuntimeConfig.from_env() == RuntimeConfig()

    def test_invalid_value_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOOM_MIXED_KEYS", "sometimes")
        with pytest.raises(ValidationError):
            RuntimeConfig.from_env()
