"""
Query source boundary.

``use_query`` talks to a data layer through the ``QuerySource`` protocol: it
subscribes to a key, reads snapshots, and asks for fetches. Caching, request
deduplication and staleness live entirely in the source.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

SnapshotListener = Callable[["QuerySnapshot"], None]


@dataclass(frozen=True)
class QuerySnapshot:
    """Cached state of one query key."""

    data: Any = None
    error: BaseException | None = None
    updated_at: float | None = None


@runtime_checkable
class QuerySource(Protocol):
    """Data layer consumed by ``use_query``."""

    def subscribe(self, key: Any, listener: SnapshotListener) -> Callable[[], None]:
        """Register ``listener`` for snapshots of ``key``; returns an unsubscribe function."""
        ...

    def get_snapshot(self, key: Any) -> QuerySnapshot | None: ...

    def fetch(self, key: Any, fetcher: Callable[[], Any]) -> Any: ...

    def refetch(self, key: Any) -> Any: ...

    def invalidate(self, key: Any) -> None: ...


@dataclass(frozen=True)
class QueryResult:
    """What ``use_query`` returns to a render."""

    data: Any
    error: BaseException | None
    updated_at: float | None
    refetch: Callable[[], Any]
    invalidate: Callable[[], None]

    @property
    def loading(self) -> bool:
        return self.data is None and self.error is None
