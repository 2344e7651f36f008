"""Protocol interfaces for FieldSync abstractions.

Structural typing, no inheritance required, easy to test with isinstance().
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from fieldsync.core.types import ErrorCallback, SnapshotCallback, Unsubscribe


# ---------------------------------------------------------------------------
# Persistence: Real-time Document Store
# ---------------------------------------------------------------------------

@runtime_checkable
class IDocumentStore(Protocol):
    """Path-addressed document tree with full-snapshot subscriptions."""

    def get(self, path: str) -> Any | None: ...

    def set(self, path: str, value: Any) -> None: ...

    def update(self, path: str, partial: dict[str, Any]) -> None: ...

    def subscribe(
        self, path: str, on_snapshot: SnapshotCallback, on_error: ErrorCallback | None = None
    ) -> Unsubscribe: ...

    def poll(self) -> int: ...

    def close(self) -> None: ...
