"""
Error types for the Loom rendering runtime.
"""

from __future__ import annotations

from dataclasses import dataclass


class LoomError(Exception):
    """Base exception for all Loom errors."""

    def __init__(self, message: str, context: ErrorContext | None = None):
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context if available."""
        if self.context:
            return f"{self.context.format()}: {self.message}"
        return self.message


class HookOrderError(LoomError):
    """
    Raised when a render calls hooks in a different order than the last one.

    Examples:
    - A hook called inside an ``if`` that flipped between renders
    - An early ``return`` before the remaining hooks
    - A loop whose length changed and calls a hook per iteration
    """

    pass


class MountError(LoomError):
    """
    Raised when a component cannot be bound to its host target.

    Examples:
    - Selector matched nothing in the document
    - Target is not an element node
    """

    pass


class LifecycleError(LoomError):
    """
    Raised on an illegal lifecycle transition.

    Examples:
    - Mounting an instance that is already mounted
    - Mounting an instance after ``unmount()``
    """

    pass


class MixedKeysError(LoomError):
    """Raised when a child list mixes keyed and unkeyed nodes under the "forbid" policy."""

    pass


class ConfigurationError(LoomError):
    """Raised when a runtime collaborator is required but not configured."""

    pass


@dataclass
class ErrorContext:
    """
    Where in the component tree an error occurred.

    Attributes:
        component: Component class name
        hook_index: Call index of the offending hook, if any
        detail: Optional extra detail (expected/actual kinds, selector, ...)
    """

    component: str
    hook_index: int | None = None
    detail: str | None = None

    def format(self) -> str:
        """
        Format error context as a human-readable string.

        Returns:
            Formatted string like: "Counter hook #2 (expected state, got effect)"
        """
        location = self.component
        if self.hook_index is not None:
            location += f" hook #{self.hook_index}"
        if self.detail:
            location += f" ({self.detail})"
        return location


def make_hook_order_error(
    component: str,
    index: int,
    expected: str,
    actual: str,
) -> HookOrderError:
    """
    Helper to create a HookOrderError for a kind mismatch at one call index.

    Args:
        component: Component class name
        index: Hook call index
        expected: Kind stored from the previous render
        actual: Kind requested by this render

    Returns:
        HookOrderError with context attached
    """
    context = ErrorContext(
        component=component,
        hook_index=index,
        detail=f"expected {expected}, got {actual}",
    )
    return HookOrderError("hooks must be called in the same order on every render", context)
