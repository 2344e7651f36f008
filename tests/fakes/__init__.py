"""Shared test doubles: the memory store plus a store with injectable failures."""

from __future__ import annotations

from typing import Any

from fieldsync.core.exceptions import StoreError, WriteError
from fieldsync.persistence.documents import split_path
from fieldsync.persistence.memory_backend import MemoryDocumentStore


class FlakyDocumentStore(MemoryDocumentStore):
    """MemoryDocumentStore whose writes fail on chosen paths.

    `fail_writes_under` holds path prefixes; any set/update touching one of
    them raises WriteError and leaves the tree untouched.
    """

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        super().__init__(initial)
        self.fail_writes_under: set[str] = set()
        self.writes: list[tuple[str, Any]] = []

    def _check(self, path: str) -> None:
        parts = split_path(path)
        for prefix in self.fail_writes_under:
            head = split_path(prefix)
            if parts[: len(head)] == head:
                raise WriteError(path, "injected failure")

    def set(self, path: str, value: Any) -> None:
        self._check(path)
        self.writes.append((path, value))
        super().set(path, value)

    def update(self, path: str, partial: dict[str, Any]) -> None:
        self._check(path)
        self.writes.append((path, partial))
        super().update(path, partial)

    def emit_error(self, message: str = "permission denied") -> None:
        """Push a subscription failure to every live listener."""
        self._subs.fail_all(StoreError(message))


__all__ = ["FlakyDocumentStore", "MemoryDocumentStore"]
