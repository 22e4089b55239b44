"""
Runtime configuration.

Defaults suit application code; ``RuntimeConfig.from_env()`` reads overrides
from ``LOOM_*`` environment variables at runtime.
"""

from __future__ import annotations

import os
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

HookOrderPolicy = Literal["raise", "warn"]
MixedKeysPolicy = Literal["positional", "forbid"]


class RuntimeConfig(BaseModel):
    """
    Behavioural switches shared by every component of one runtime.

    Example:
        RuntimeConfig(hook_order="warn", mixed_keys="forbid")
    """

    model_config = ConfigDict(frozen=True)

    hook_order: HookOrderPolicy = Field(
        default="raise",
        description="What to do when a render calls hooks in a different order",
    )
    mixed_keys: MixedKeysPolicy = Field(
        default="positional",
        description="Whether a child list may mix keyed and unkeyed nodes",
    )
    error_placeholder: str = Field(
        default="Component Error",
        description="Text prefix of the placeholder shown when a render fails without fallback",
    )
    error_placeholder_class: str = Field(
        default="loom-error",
        description="CSS class of the error placeholder element",
    )
    live_properties: tuple[str, ...] = Field(
        default=("value", "checked", "disabled"),
        description="Form-control attributes written as live properties",
    )
    form_controls: tuple[str, ...] = Field(
        default=("input", "textarea", "select"),
        description="Tags whose live properties are assigned directly",
    )
    key_attribute: str = Field(
        default="data-key",
        description="Attribute that carries reconciliation keys in markup",
    )
    log_render_errors: bool = Field(
        default=True,
        description="Log render errors that were contained by a component",
    )

    @classmethod
    def from_env(cls) -> RuntimeConfig:
        """Load configuration from environment variables."""
        overrides: dict[str, object] = {}
        if "LOOM_HOOK_ORDER" in os.environ:
            overrides["hook_order"] = os.environ["LOOM_HOOK_ORDER"]
        if "LOOM_MIXED_KEYS" in os.environ:
            overrides["mixed_keys"] = os.environ["LOOM_MIXED_KEYS"]
        if "LOOM_ERROR_PLACEHOLDER" in os.environ:
            overrides["error_placeholder"] = os.environ["LOOM_ERROR_PLACEHOLDER"]
        if "LOOM_LOG_RENDER_ERRORS" in os.environ:
            overrides["log_render_errors"] = os.environ["LOOM_LOG_RENDER_ERRORS"] not in ("0", "false")
        return cls.model_validate(overrides)
