"""Path helpers, value conversion and subscription fan-out shared by all document stores."""

from __future__ import annotations

import copy
import itertools
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Callable

from loguru import logger
from pydantic import BaseModel

from fieldsync.core.exceptions import StoreError, SubscriptionError
from fieldsync.core.types import ErrorCallback, SnapshotCallback, Unsubscribe

_MISSING = object()


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

def split_path(path: str) -> list[str]:
    return [part for part in path.strip("/").split("/") if part]


def join_path(*parts: str) -> str:
    return "/".join(p for part in parts for p in split_path(part))


def paths_overlap(a: str, b: str) -> bool:
    """True when one path is an ancestor of (or equal to) the other."""
    pa, pb = split_path(a), split_path(b)
    n = min(len(pa), len(pb))
    return pa[:n] == pb[:n]


def get_in(tree: Any, parts: list[str]) -> Any | None:
    node = tree
    for part in parts:
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node


def set_in(tree: dict[str, Any], parts: list[str], value: Any) -> None:
    """Set (or, for None, delete) the value at parts inside tree, pruning emptied branches."""
    if not parts:
        raise StoreError("Cannot write to an empty relative path")
    head, rest = parts[0], parts[1:]
    if not rest:
        if value is None:
            tree.pop(head, None)
        else:
            tree[head] = value
        return
    child = tree.get(head)
    if not isinstance(child, dict):
        if value is None:
            return
        child = {}
        tree[head] = child
    set_in(child, rest, value)
    if not child:
        tree.pop(head, None)


# ---------------------------------------------------------------------------
# Value conversion
# ---------------------------------------------------------------------------

def to_plain(value: Any) -> Any:
    """Convert models, Decimals and enums into JSON-compatible plain values."""
    if isinstance(value, BaseModel):
        return to_plain(value.model_dump(by_alias=True))
    if isinstance(value, Decimal):
        return int(value) if value == int(value) else float(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(k): to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(i) for i in value]
    return value


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------

@dataclass
class Subscription:
    sub_id: int
    path: str
    on_snapshot: SnapshotCallback
    on_error: ErrorCallback | None = None
    last_value: Any = field(default=_MISSING, repr=False)


class SubscriptionRegistry:
    """Tracks live listeners and delivers full snapshots to them.

    `read` is the owning store's reader; every delivery re-reads the whole
    subscribed path so listeners always receive a complete snapshot.
    """

    def __init__(self, read: Callable[[str], Any]) -> None:
        self._read = read
        self._subs: dict[int, Subscription] = {}
        self._ids = itertools.count(1)

    def __len__(self) -> int:
        return len(self._subs)

    def add(
        self, path: str, on_snapshot: SnapshotCallback, on_error: ErrorCallback | None = None
    ) -> Unsubscribe:
        sub = Subscription(next(self._ids), join_path(path), on_snapshot, on_error)
        self._subs[sub.sub_id] = sub
        self.deliver(sub)

        def unsubscribe() -> None:
            self._subs.pop(sub.sub_id, None)

        return unsubscribe

    def subscriptions(self) -> list[Subscription]:
        return list(self._subs.values())

    def overlapping(self, path: str) -> list[Subscription]:
        return [s for s in self._subs.values() if paths_overlap(s.path, path)]

    def notify(self, path: str) -> int:
        """Deliver fresh snapshots to every listener overlapping a written path."""
        delivered = 0
        for sub in self.overlapping(path):
            delivered += self.deliver(sub)
        return delivered

    def refresh(self, only_changed: bool = True) -> int:
        delivered = 0
        for sub in self.subscriptions():
            delivered += self.deliver(sub, only_changed=only_changed)
        return delivered

    def deliver(self, sub: Subscription, only_changed: bool = False) -> int:
        if sub.sub_id not in self._subs:
            return 0
        try:
            value = self._read(sub.path)
        except StoreError as exc:
            self.fail(sub, exc)
            return 0
        if only_changed and sub.last_value is not _MISSING and sub.last_value == value:
            return 0
        sub.last_value = copy.deepcopy(value)
        sub.on_snapshot(copy.deepcopy(value))
        return 1

    def fail(self, sub: Subscription, exc: Exception) -> None:
        error = exc if isinstance(exc, SubscriptionError) else SubscriptionError(sub.path, str(exc))
        logger.error(f"Subscription {sub.sub_id} on {sub.path!r} failed: {exc}")
        if sub.on_error is not None:
            sub.on_error(error)

    def fail_all(self, exc: Exception) -> None:
        for sub in self.subscriptions():
            self.fail(sub, exc)

    def clear(self) -> None:
        self._subs.clear()
