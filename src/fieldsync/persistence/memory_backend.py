"""In-memory document store: dict-backed, synchronous fan-out."""

from __future__ import annotations

import copy
from typing import Any

from fieldsync.core.exceptions import StoreError
from fieldsync.core.types import ErrorCallback, SnapshotCallback, Unsubscribe
from fieldsync.persistence.documents import (
    SubscriptionRegistry,
    get_in,
    join_path,
    set_in,
    split_path,
    to_plain,
)


class MemoryDocumentStore:
    """Dict-backed IDocumentStore for local development and unit tests.

    Listeners are notified synchronously inside `set`/`update`, so `poll`
    never has anything to drain.
    """

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._root: dict[str, Any] = to_plain(copy.deepcopy(initial)) if initial else {}
        self._subs = SubscriptionRegistry(self._read)

    def _read(self, path: str) -> Any | None:
        parts = split_path(path)
        return copy.deepcopy(get_in(self._root, parts) if parts else self._root or None)

    def get(self, path: str) -> Any | None:
        return self._read(path)

    def set(self, path: str, value: Any) -> None:
        parts = split_path(path)
        if not parts:
            raise StoreError("Refusing to replace the store root")
        set_in(self._root, parts, to_plain(copy.deepcopy(value)))
        self._subs.notify(path)

    def update(self, path: str, partial: dict[str, Any]) -> None:
        writes = [(split_path(join_path(path, key)), value) for key, value in partial.items()]
        if any(not parts for parts, _ in writes):
            raise StoreError("Refusing to replace the store root")
        for parts, value in writes:
            set_in(self._root, parts, to_plain(copy.deepcopy(value)))
        self._subs.notify(path)

    def subscribe(
        self, path: str, on_snapshot: SnapshotCallback, on_error: ErrorCallback | None = None
    ) -> Unsubscribe:
        return self._subs.add(path, on_snapshot, on_error)

    def poll(self) -> int:
        return 0

    def close(self) -> None:
        self._subs.clear()

    @property
    def subscriber_count(self) -> int:
        return len(self._subs)
